import asyncio
import threading
from functools import partial

from peer.address import split_message_line
from protocol.errors import InvalidAddress, InvalidTarget, NotFound, P2PError
from utils.helpers import get_logger

logger = get_logger(__name__)

COMMANDS = [
    ("/handle <handle>", "set handle"),
    ("/handle", "show current handle"),
    ("/connect ipaddr:port", "connect to peer"),
    ("/peers", "list tracked peers"),
    ("/discover", "list nodes announced on the local network"),
    ("/help", "show help"),
    ("/quit", "exit"),
]


def show_help():
    for usage, text in COMMANDS:
        print(f"{usage}: {text}")
    print("To send a message: handle#fingerprint <your message here>")


def _message_acked(target):
    logger.debug(f"Message to {target} delivered")


def send_line(node, line):
    try:
        handle, fingerprint, text = split_message_line(line)
    except InvalidTarget as e:
        logger.warning(str(e))
        show_help()
        return
    target = f"{handle}#{fingerprint}"
    try:
        node.send_message(node.fingerprint, target, text, on_ack=partial(_message_acked, target))
    except NotFound:
        print(f"[!] No known peer matches {target}. Have they connected?")


def run_command(node, line):
    cmd, _, rest = line.partition(" ")
    rest = rest.strip()
    if cmd == "/quit":
        return False
    elif cmd == "/handle":
        if rest:
            node.change_local_handle(rest)
        else:
            print(node.handle)
    elif cmd == "/connect" and rest:
        try:
            node.connect(rest)
        except InvalidAddress as e:
            logger.error(f"Could not start connection: {e}")
    elif cmd == "/peers":
        peers = node.peers()
        if not peers:
            print("No peers tracked.")
        for record in peers:
            print(record)
    elif cmd == "/discover":
        nodes = node.discovered_nodes()
        if not nodes:
            print("No nodes found. Start with --announce to browse the local network.")
        for handle, fingerprint, address in nodes:
            print(f"{handle}#{fingerprint} @ {address}")
    else:
        show_help()
    return True


def handle_line(node, line):
    """
    Act on one line of operator input. Returns False once the operator
    asked to quit.
    """
    line = line.rstrip("\r\n")
    if not line.strip():
        return True
    try:
        if line.startswith("/"):
            return run_command(node, line)
        send_line(node, line)
    except P2PError as e:
        logger.error(f"Command failed: {e}")
    return True


async def run_cli(node):
    """
    Read operator input on a helper thread and run every line on the
    event loop. Returns on /quit or end of input.
    """
    loop = asyncio.get_running_loop()
    lines = asyncio.Queue()
    ready = threading.Event()

    def read_lines():
        while True:
            ready.wait()
            ready.clear()
            try:
                line = input(node.prompt)
            except EOFError:
                line = None
            loop.call_soon_threadsafe(lines.put_nowait, line)
            if line is None:
                return

    threading.Thread(target=read_lines, daemon=True).start()
    print("Type /help to get started")
    ready.set()
    while True:
        line = await lines.get()
        if line is None or not handle_line(node, line):
            break
        ready.set()
