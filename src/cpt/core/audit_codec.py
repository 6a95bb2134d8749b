# src/cpt/core/audit_codec.py
"""Transit encoding of audit trail messages.

The engine stores cop_audit_trail_event.long_message in one of three forms,
selected by the first character:

- ``U<base64>``: base64 of a serialized string
- ``C<base64>``: base64 of a zlib-deflated serialized string
- anything else: plain text, stored as-is

A serialized string starts with a fixed 7-byte header (stream magic,
stream version, string tag, 2-byte big-endian length) followed by the
UTF-8 text. Decoding drops the header without interpreting it.
"""

import base64
import binascii
import struct
import zlib

from cpt.contracts.errors import AuditDecodeError

UNCOMPRESSED_TAG = "U"
COMPRESSED_TAG = "C"

HEADER_LENGTH = 7

_STREAM_MAGIC = 0xACED
_STREAM_VERSION = 5
_TC_STRING = 0x74


def decode_message(message: str) -> str:
    """Decode a stored audit message to plain text.

    Args:
        message: Raw long_message column value

    Returns:
        Decoded text. Untagged messages are returned unchanged.
        Line breaks inside a tagged payload are ignored.

    Raises:
        AuditDecodeError: If the base64 payload or the compressed stream is malformed.
    """
    if not message or message[0] not in (UNCOMPRESSED_TAG, COMPRESSED_TAG):
        return message

    # Payloads may be wrapped into lines; any other non-alphabet character is rejected
    payload = message[1:].replace("\r", "").replace("\n", "")
    try:
        raw = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise AuditDecodeError(f"Malformed base64 payload: {e}") from e

    if message[0] == COMPRESSED_TAG:
        try:
            raw = zlib.decompress(raw)
        except zlib.error as e:
            raise AuditDecodeError(f"Malformed compressed payload: {e}") from e

    if len(raw) < HEADER_LENGTH:
        raise AuditDecodeError(f"Payload shorter than {HEADER_LENGTH}-byte header ({len(raw)} bytes)")

    return raw[HEADER_LENGTH:].decode("utf-8", errors="replace")


def encode_message(text: str, *, compress: bool = False) -> str:
    """Encode text the way the engine stores audit messages.

    Used to build realistic audit rows for fixtures and local testing.

    Raises:
        ValueError: If the UTF-8 text does not fit the 2-byte length field.
    """
    body = text.encode("utf-8")
    if len(body) > 0xFFFF:
        raise ValueError(f"Message too long for short string encoding: {len(body)} bytes")

    raw = struct.pack(">HHBH", _STREAM_MAGIC, _STREAM_VERSION, _TC_STRING, len(body)) + body
    if compress:
        return COMPRESSED_TAG + base64.b64encode(zlib.compress(raw)).decode("ascii")
    return UNCOMPRESSED_TAG + base64.b64encode(raw).decode("ascii")
