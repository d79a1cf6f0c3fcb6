import asyncio

import pytest

from protocol.errors import DecodeFailure
from protocol.json_handler import decode_json, encode_json, recv_json


def test_encode_json_is_one_line():
    frame = encode_json({"id": 1, "method": "Message", "params": {"message": "a\nb"}})
    assert frame.endswith(b"\n")
    assert frame.count(b"\n") == 1
    assert decode_json(frame.rstrip(b"\n"))["params"]["message"] == "a\nb"


@pytest.mark.parametrize("line", [b"not json", b"[1, 2]", b"\xff\xfe"])
def test_decode_json_rejects(line):
    with pytest.raises(DecodeFailure):
        decode_json(line)


def test_recv_json_reads_frames_until_eof():
    async def scenario():
        reader = asyncio.StreamReader()
        reader.feed_data(encode_json({"id": 1}) + encode_json({"id": 2}))
        reader.feed_eof()
        return [await recv_json(reader), await recv_json(reader), await recv_json(reader)]

    assert asyncio.run(scenario()) == [{"id": 1}, {"id": 2}, None]


def test_recv_json_truncated_frame():
    async def scenario():
        reader = asyncio.StreamReader()
        reader.feed_data(b'{"id": 1')
        reader.feed_eof()
        await recv_json(reader)

    with pytest.raises(ConnectionError):
        asyncio.run(scenario())
