"""
Encode/decode pipeline for cache payloads.

Values are serialized (orjson or pickle) and then optionally compressed with
raw DEFLATE. Nothing about the method or level is written to disk, so a
payload can only be decoded with the configuration that produced it.
"""

from __future__ import annotations

import pickle
import zlib
from typing import Any

import orjson

from shardcache.exceptions import DecodeError, EncodeError
from shardcache.types import SerializationMethod

# Negative wbits selects a raw DEFLATE stream with no zlib header or trailer.
_RAW_DEFLATE_WBITS = -15


def serialize(value: Any, method: SerializationMethod) -> bytes:
    """Serialize a value to bytes.

    Args:
        value: Value to serialize.
        method: JSON (orjson) or NATIVE (pickle).

    Returns:
        Serialized bytes.

    Raises:
        EncodeError: If the value cannot be represented by the method.
    """
    try:
        if method == SerializationMethod.JSON:
            return orjson.dumps(value, option=orjson.OPT_NON_STR_KEYS)
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
    except (TypeError, orjson.JSONEncodeError, pickle.PicklingError, AttributeError) as e:
        raise EncodeError(
            "Value cannot be serialized",
            context={"method": method.value, "type": type(value).__name__, "error": str(e)},
        ) from e


def deserialize(data: bytes, method: SerializationMethod) -> Any:
    """Deserialize bytes produced by serialize().

    Raises:
        DecodeError: If the bytes are not valid for the method.
    """
    try:
        if method == SerializationMethod.JSON:
            return orjson.loads(data)
        return pickle.loads(data)
    except orjson.JSONDecodeError as e:
        raise DecodeError(
            "Stored payload is not valid JSON",
            context={"method": method.value, "error": str(e)},
        ) from e
    except (
        pickle.UnpicklingError,
        EOFError,
        ValueError,
        TypeError,
        KeyError,
        IndexError,
        AttributeError,
        ImportError,
    ) as e:
        raise DecodeError(
            "Stored payload could not be unpickled",
            context={"method": method.value, "error": str(e)},
        ) from e


def compress(data: bytes, level: int) -> bytes:
    """Compress bytes with raw DEFLATE. Level 0 returns data unchanged."""
    if level <= 0:
        return data
    compressor = zlib.compressobj(level, zlib.DEFLATED, _RAW_DEFLATE_WBITS)
    return compressor.compress(data) + compressor.flush()


def decompress(data: bytes) -> bytes:
    """Inflate a raw DEFLATE stream.

    Raises:
        DecodeError: If the data is not a complete DEFLATE stream.
    """
    decompressor = zlib.decompressobj(_RAW_DEFLATE_WBITS)
    try:
        out = decompressor.decompress(data) + decompressor.flush()
    except zlib.error as e:
        raise DecodeError(
            "Stored payload is not DEFLATE-compressed",
            context={"error": str(e)},
        ) from e
    if not decompressor.eof:
        raise DecodeError("Stored payload is a truncated DEFLATE stream")
    return out


def encode(value: Any, method: SerializationMethod, level: int = 0) -> bytes:
    """Serialize then compress."""
    return compress(serialize(value, method), level)


def decode(data: bytes, method: SerializationMethod, level: int = 0) -> Any:
    """Decompress (when level > 0) then deserialize."""
    if level > 0:
        data = decompress(data)
    return deserialize(data, method)
