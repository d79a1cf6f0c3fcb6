import pytest

from peer.address import Endpoint, format_endpoint, parse_endpoint, parse_target, split_message_line
from protocol.errors import InvalidAddress, InvalidTarget


def test_parse_endpoint():
    endpoint = parse_endpoint("10.0.0.5:9999")
    assert endpoint == Endpoint("10.0.0.5", 9999)
    assert endpoint.ip == "10.0.0.5"
    assert endpoint.port == 9999


def test_parse_endpoint_strips_whitespace():
    assert parse_endpoint("  127.0.0.1:80\n") == Endpoint("127.0.0.1", 80)


@pytest.mark.parametrize("text", [
    "bad",
    "1.2.3.4",
    "1.2.3.4:notaport",
    "1.2.3.4:",
    ":80",
    "1.2.3.4:70000",
    "1.2.3.4:-1",
    "1.2.3.4:80:90",
    "256.1.1.1:80",
    "example.com:80",
    "::1:80",
])
def test_parse_endpoint_rejects(text):
    with pytest.raises(InvalidAddress):
        parse_endpoint(text)


def test_invalid_address_is_a_value_error():
    with pytest.raises(ValueError):
        parse_endpoint("nope")


@pytest.mark.parametrize("endpoint", [
    Endpoint("0.0.0.0", 0),
    Endpoint("192.168.1.20", 65535),
    Endpoint("127.0.0.1", 8080),
])
def test_format_then_parse_gives_back_endpoint(endpoint):
    assert parse_endpoint(format_endpoint(endpoint)) == endpoint


def test_format_endpoint():
    assert format_endpoint(Endpoint("10.0.0.5", 9999)) == "10.0.0.5:9999"


def test_split_message_line():
    assert split_message_line("alice#42 hello there") == ("alice", 42, "hello there")


def test_split_message_line_keeps_body_literal():
    assert split_message_line("bob#7 a  b # c") == ("bob", 7, "a  b # c")


def test_parse_target_allows_empty_handle_prefix():
    assert parse_target("#42") == ("", 42)


@pytest.mark.parametrize("line", [
    "alice#42",
    "alice#42 ",
    "alice hello",
    "alice#x hello",
    "alice#0 hello",
    "alice#65536 hello",
    "alice# hello",
])
def test_split_message_line_rejects(line):
    with pytest.raises(InvalidTarget):
        split_message_line(line)
