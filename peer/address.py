import ipaddress
from typing import NamedTuple

from protocol.errors import InvalidAddress, InvalidTarget
from protocol.message import MAX_FINGERPRINT

MAX_PORT = 65535


class Endpoint(NamedTuple):
    ip: str
    port: int


def parse_endpoint(text):
    """
    Parse ``ip:port`` into an :class:`Endpoint`.

    The host must be a dotted-quad IPv4 literal and the port a base-10
    number in 0..65535. Raises InvalidAddress otherwise.
    """
    if not isinstance(text, str):
        raise InvalidAddress(f"Expected address text, got {type(text).__name__}")
    text = text.strip()
    if text.count(":") != 1:
        raise InvalidAddress(f"Unable to parse address: {text!r}")

    host, port_text = text.split(":")
    try:
        ip = ipaddress.IPv4Address(host)
    except ValueError:
        raise InvalidAddress(f"Unable to parse address: {text!r}") from None

    if not port_text.isdigit() or not port_text.isascii():
        raise InvalidAddress(f"Invalid port in address: {text!r}")
    port = int(port_text, 10)
    if port > MAX_PORT:
        raise InvalidAddress(f"Port out of range in address: {text!r}")

    return Endpoint(str(ip), port)


def format_endpoint(endpoint):
    return f"{endpoint.ip}:{endpoint.port}"


def parse_target(text):
    """
    Split a ``handle#fingerprint`` target into its handle prefix and
    numeric fingerprint.
    """
    handle, sep, fingerprint_text = text.partition("#")
    if not sep:
        raise InvalidTarget(f"Expected handle#fingerprint, got {text!r}")
    if not fingerprint_text.isdigit() or not fingerprint_text.isascii():
        raise InvalidTarget(f"Invalid fingerprint in {text!r}")
    fingerprint = int(fingerprint_text, 10)
    if not 0 < fingerprint <= MAX_FINGERPRINT:
        raise InvalidTarget(f"Fingerprint out of range in {text!r}")
    return handle, fingerprint


def split_message_line(line):
    """
    Parse ``handle#fingerprint <message text>`` into
    ``(handle, fingerprint, text)``. Everything after the first space is
    the message body.
    """
    target, sep, text = line.lstrip().partition(" ")
    if not sep or not text:
        raise InvalidTarget("Expected: handle#fingerprint <your message here>")
    handle, fingerprint = parse_target(target)
    return handle, fingerprint, text
