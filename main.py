#main.py  ==  peer-to-peer chat node
           #↳ listens for peers
           #↳ connects to peers (handshake)
           #↳ sends and receives chat lines
           #↳ broadcasts handle changes
           #↳ acts on user input
'''p2pchat/
├── main.py                 # Entry point to launch the node
├── config.py               # Configuration defaults + config.yaml loading
├── peer/
│   ├── __init__.py
│   ├── node.py             # Node: the facade the prompt and listener call into
│   ├── registry.py         # Known peers, addressed by stable ids
│   ├── address.py          # ip:port and handle#fingerprint parsing
│   ├── channel.py          # One outbound RPC channel per peer
│   ├── listener.py         # Inbound RPC server
│   ├── cli.py              # Interactive prompt
│   ├── discovery.py        # mDNS discovery using zeroconf
│   └── broadcast.py        # mDNS announcement using zeroconf
│
├── crypto/
│   ├── __init__.py
│   └── identity.py         # Persistent node key, default fingerprint
│
├── protocol/
│   ├── __init__.py
│   ├── message.py          # Connect / Message / HandleChange payloads
│   ├── handler.py          # Protocol engine (server + client side)
│   ├── json_handler.py     # Newline-delimited JSON framing
│   └── errors.py           # Custom exceptions
│
└── utils/
    ├── __init__.py
    └── helpers.py          # Logging setup
'''

import argparse
import asyncio
import sys

from config import load_config
from crypto.identity import Identity
from peer.cli import run_cli
from peer.node import Node
from utils.helpers import get_logger

logger = get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Peer-to-peer chat node")
    parser.add_argument("fingerprint", nargs="?", type=int,
                        help="numeric id (1-65535) shown to peers; derived from the node key when omitted")
    parser.add_argument("--config", default="config.yaml", help="YAML configuration file")
    parser.add_argument("--handle", help="display name (default: login name)")
    parser.add_argument("--port", type=int, help="listening port (default: ephemeral)")
    parser.add_argument("--announce", action="store_true", help="announce and discover nodes over mDNS")
    return parser.parse_args(argv)


def build_config(args):
    config = load_config(args.config)
    if args.fingerprint is not None:
        config["fingerprint"] = args.fingerprint
    if args.handle:
        config["handle"] = args.handle
    if args.port is not None:
        config["listen_port"] = args.port
    if args.announce:
        config["announce"] = True
    return config


async def serve(node):
    await node.start()
    try:
        await run_cli(node)
    finally:
        await node.stop()


def main(argv=None):
    args = parse_args(argv)
    try:
        config = build_config(args)
        identity = Identity(config["key_path"]) if config["fingerprint"] is None else None
        node = Node(config, identity)
    except (OSError, ValueError) as e:
        logger.error(f"Unable to start: {e}")
        return 1

    try:
        asyncio.run(serve(node))
    except KeyboardInterrupt:
        print("\nInterrupted. Exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
