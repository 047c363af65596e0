"""Non-cryptographic and cryptographic hash functions and CRC-32."""

from __future__ import annotations

import hashlib
import zlib
from typing import Union

__all__ = [
    "FNV1A32_START",
    "FNV1A64_START",
    "fnv1a32",
    "fnv1a64",
    "sha1",
    "sha256",
    "md5",
    "crc32",
]

FNV1A32_START = 0x811C9DC5
FNV1A64_START = 0xCBF29CE484222325

_FNV32_PRIME = 0x01000193
_FNV64_PRIME = 0x00000100000001B3
_MASK32 = 0xFFFFFFFF
_MASK64 = 0xFFFFFFFFFFFFFFFF

BytesLike = Union[bytes, bytearray, memoryview, str]


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def fnv1a32(data: BytesLike, hash: int = FNV1A32_START) -> int:
    """Return the 32-bit FNV-1a hash of data, continuing from ``hash``."""
    value = hash & _MASK32
    for byte in _as_bytes(data):
        value = ((value ^ byte) * _FNV32_PRIME) & _MASK32
    return value


def fnv1a64(data: BytesLike, hash: int = FNV1A64_START) -> int:
    """Return the 64-bit FNV-1a hash of data, continuing from ``hash``."""
    value = hash & _MASK64
    for byte in _as_bytes(data):
        value = ((value ^ byte) * _FNV64_PRIME) & _MASK64
    return value


def sha1(data: BytesLike) -> bytes:
    """Return the 20-byte SHA-1 digest of data."""
    return hashlib.sha1(_as_bytes(data)).digest()


def sha256(data: BytesLike) -> bytes:
    """Return the 32-byte SHA-256 digest of data."""
    return hashlib.sha256(_as_bytes(data)).digest()


def md5(data: BytesLike) -> bytes:
    """Return the 16-byte MD5 digest of data."""
    return hashlib.md5(_as_bytes(data)).digest()


def crc32(data: BytesLike, cs: int = 0) -> int:
    """Return the CRC-32 of data, continuing from the checksum ``cs``."""
    return zlib.crc32(_as_bytes(data), cs & _MASK32) & _MASK32