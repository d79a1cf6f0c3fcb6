import json

from protocol.errors import DecodeFailure

MAX_FRAME = 64 * 1024


def encode_json(obj):
    """
    Serialize a JSON object to a single newline-terminated frame.
    """
    return (json.dumps(obj, separators=(",", ":")) + '\n').encode('utf-8')


def decode_json(line):
    """
    Parse one frame (without its newline) into a dict.
    """
    try:
        obj = json.loads(line.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeFailure(f"Malformed frame: {e}") from e
    if not isinstance(obj, dict):
        raise DecodeFailure("Frame is not a JSON object")
    return obj


async def send_json(writer, obj):
    """
    Write a JSON object to an asyncio stream, ending with a newline.
    """
    writer.write(encode_json(obj))
    await writer.drain()


async def recv_json(reader):
    """
    Read the next newline-delimited JSON object from an asyncio stream.
    Returns None once the peer has closed the stream.
    """
    line = await reader.readline()
    if not line:
        return None
    if not line.endswith(b'\n'):
        raise ConnectionError("Stream closed in the middle of a frame.")
    return decode_json(line.rstrip(b'\n'))
