"""Byte-order helpers, endian-aware stored values, base64 and rot13."""

from __future__ import annotations

import base64
import enum
import operator
import struct
import sys
from typing import Callable, Union

__all__ = [
    "DEFAULT_ALPHABET",
    "URLSAFE_ALPHABET",
    "Endianness",
    "EndianValue",
    "sign_extend",
    "ext24",
    "ext48",
    "bswap16",
    "bswap24",
    "bswap24s",
    "bswap32",
    "bswap48",
    "bswap48s",
    "bswap64",
    "bswap32f",
    "bswap64f",
    "base64_encode",
    "base64_decode",
    "rot13",
]

DEFAULT_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
URLSAFE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"

BytesLike = Union[bytes, bytearray, memoryview, str]


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value


# ---------------------------------------------------------------------------
# Sign extension and byte swapping


def sign_extend(value: int, src_bits: int, dst_bits: int) -> int:
    """Sign-extend a src_bits-wide value to an unsigned dst_bits-wide value."""
    src_mask = (1 << src_bits) - 1
    dst_mask = (1 << dst_bits) - 1
    value &= src_mask
    if value & (1 << (src_bits - 1)):
        value |= (dst_mask << src_bits) & dst_mask
    return value & dst_mask


def ext24(value: int) -> int:
    """Interpret the low 24 bits of a 32-bit value as a signed 24-bit number."""
    value &= 0xFFFFFFFF
    if value & 0x00800000:
        value |= 0xFF000000
    return _to_signed(value, 32)


def ext48(value: int) -> int:
    """Interpret the low 48 bits of a 64-bit value as a signed 48-bit number."""
    value &= 0xFFFFFFFFFFFFFFFF
    if value & 0x0000800000000000:
        value |= 0xFFFF000000000000
    return _to_signed(value, 64)


def _swap(value: int, nbytes: int) -> int:
    mask = (1 << (nbytes * 8)) - 1
    return int.from_bytes((value & mask).to_bytes(nbytes, "little"), "big")


def bswap16(value: int) -> int:
    """Reverse the bytes of a 16-bit value."""
    return _swap(value, 2)


def bswap24(value: int) -> int:
    """Reverse the low three bytes of a 32-bit value; the result fits in 24 bits."""
    return _swap(value, 3)


def bswap24s(value: int) -> int:
    """Reverse three bytes and sign-extend the 24-bit result."""
    return ext24(bswap24(value))


def bswap32(value: int) -> int:
    """Reverse the bytes of a 32-bit value."""
    return _swap(value, 4)


def bswap48(value: int) -> int:
    """Reverse the low six bytes of a 64-bit value."""
    return _swap(value, 6)


def bswap48s(value: int) -> int:
    """Reverse six bytes and sign-extend the 48-bit result."""
    return ext48(bswap48(value))


def bswap64(value: int) -> int:
    """Reverse the bytes of a 64-bit value."""
    return _swap(value, 8)


def bswap32f(value: Union[int, float]) -> Union[int, float]:
    """Byte-swap between a float and its 32-bit pattern.

    Given a float, returns its byte-swapped bit pattern as an int; given an
    int, byte-swaps it and reinterprets the result as a float.
    """
    if isinstance(value, float):
        (bits,) = struct.unpack("=I", struct.pack("=f", value))
        return bswap32(bits)
    (result,) = struct.unpack("=f", struct.pack("=I", bswap32(value)))
    return result


def bswap64f(value: Union[int, float]) -> Union[int, float]:
    """Byte-swap between a double and its 64-bit pattern."""
    if isinstance(value, float):
        (bits,) = struct.unpack("=Q", struct.pack("=d", value))
        return bswap64(bits)
    (result,) = struct.unpack("=d", struct.pack("=Q", bswap64(value)))
    return result


# ---------------------------------------------------------------------------
# Endian-aware stored values


class Endianness(enum.Enum):
    """Byte order of a stored value."""

    LITTLE = "<"
    BIG = ">"

    @classmethod
    def native(cls) -> "Endianness":
        return cls.LITTLE if sys.byteorder == "little" else cls.BIG

    @classmethod
    def reverse(cls) -> "Endianness":
        return cls.BIG if sys.byteorder == "little" else cls.LITTLE


_INT_FORMATS = "bBhHiIqQ"
_FLOAT_FORMATS = "fd"


class EndianValue:
    """A number held as raw bytes in a fixed byte order.

    ``fmt`` is a struct format character: one of ``bBhHiIqQ`` for integers
    or ``f``/``d`` for floating point values.
    """

    __slots__ = ("_fmt", "_byteorder", "_struct", "_raw")

    def __init__(self, fmt: str, byteorder: Endianness = Endianness.LITTLE,
                 value: Union[int, float] = 0) -> None:
        if len(fmt) != 1 or fmt not in _INT_FORMATS + _FLOAT_FORMATS:
            raise ValueError(f"unsupported value format: {fmt!r}")
        self._fmt = fmt
        self._byteorder = Endianness(byteorder)
        self._struct = struct.Struct(self._byteorder.value + fmt)
        self._raw = b""
        self.store(value)

    @property
    def fmt(self) -> str:
        return self._fmt

    @property
    def byteorder(self) -> Endianness:
        return self._byteorder

    @property
    def size(self) -> int:
        return self._struct.size

    @property
    def _is_int(self) -> bool:
        return self._fmt in _INT_FORMATS

    @property
    def _is_signed(self) -> bool:
        return self._fmt in "bhiq"

    def _normalize(self, value: Union[int, float]) -> Union[int, float]:
        if not self._is_int:
            return float(value)
        bits = self.size * 8
        ivalue = operator.index(value) if not isinstance(value, float) else int(value)
        ivalue &= (1 << bits) - 1
        if self._is_signed:
            ivalue = _to_signed(ivalue, bits)
        return ivalue

    def load(self) -> Union[int, float]:
        """Return the value in host form."""
        (value,) = self._struct.unpack(self._raw)
        return value

    def store(self, value: Union[int, float]) -> None:
        """Store a host-form value; integers wrap to the field width."""
        self._raw = self._struct.pack(self._normalize(value))

    def load_raw(self) -> int:
        """Return the stored bytes read as an integer in host byte order."""
        signed = self._is_signed
        return int.from_bytes(self._raw, sys.byteorder, signed=signed)

    def store_raw(self, raw: int) -> None:
        """Set the stored bytes from an integer in host byte order."""
        bits = self.size * 8
        self._raw = (raw & ((1 << bits) - 1)).to_bytes(self.size, sys.byteorder)

    def to_bytes(self) -> bytes:
        """Return the stored bytes."""
        return self._raw

    @classmethod
    def from_bytes(cls, fmt: str, byteorder: Endianness, data: bytes) -> "EndianValue":
        """Build a value from its stored bytes."""
        result = cls(fmt, byteorder)
        data = bytes(data)
        if len(data) != result.size:
            raise ValueError(
                f"expected {result.size} bytes for format {fmt!r}, got {len(data)}")
        result._raw = data
        return result

    # conversions and comparison

    def __int__(self) -> int:
        return int(self.load())

    def __float__(self) -> float:
        return float(self.load())

    def __index__(self) -> int:
        if not self._is_int:
            raise TypeError("floating point value cannot be used as an index")
        return int(self.load())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EndianValue):
            return self.load() == other.load()
        if isinstance(other, (int, float)):
            return self.load() == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (f"EndianValue({self._fmt!r}, Endianness.{self._byteorder.name}, "
                f"{self.load()!r})")

    # arithmetic assignment

    def _update(self, fn: Callable[[Union[int, float], Union[int, float]], Union[int, float]],
                other: Union[int, float, "EndianValue"]) -> "EndianValue":
        if isinstance(other, EndianValue):
            other = other.load()
        self.store(fn(self.load(), other))
        return self

    def __iadd__(self, other):
        return self._update(operator.add, other)

    def __isub__(self, other):
        return self._update(operator.sub, other)

    def __imul__(self, other):
        return self._update(operator.mul, other)

    def __itruediv__(self, other):
        if self._is_int and not isinstance(other, float):
            return self._update(_trunc_div, other)
        return self._update(operator.truediv, other)

    def __imod__(self, other):
        return self._update(_trunc_mod, other)

    def __iand__(self, other):
        return self._update(operator.and_, other)

    def __ior__(self, other):
        return self._update(operator.or_, other)

    def __ixor__(self, other):
        return self._update(operator.xor, other)

    def __ilshift__(self, other):
        return self._update(operator.lshift, other)

    def __irshift__(self, other):
        return self._update(operator.rshift, other)


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return -q if (a < 0) != (b < 0) else q


def _trunc_mod(a, b):
    if isinstance(a, int) and isinstance(b, int):
        return a - b * _trunc_div(a, b)
    raise TypeError("modulo is only defined for integer values")


# ---------------------------------------------------------------------------
# Base64 and rot13

_STANDARD_ALPHABET = DEFAULT_ALPHABET.encode("ascii")
_PAD = 0x80
_INVALID = 0xFF


def _alphabet_bytes(alphabet: Union[str, bytes, None]) -> bytes:
    if alphabet is None:
        return _STANDARD_ALPHABET
    table = alphabet.encode("latin-1") if isinstance(alphabet, str) else bytes(alphabet)
    if len(table) != 64:
        raise ValueError("alphabet must contain exactly 64 characters")
    return table


def base64_encode(data: BytesLike, alphabet: Union[str, bytes, None] = None) -> str:
    """Encode data as base64 using the given 64-character alphabet."""
    table = _alphabet_bytes(alphabet)
    encoded = base64.b64encode(_as_bytes(data))
    if table != _STANDARD_ALPHABET:
        encoded = encoded.translate(bytes.maketrans(_STANDARD_ALPHABET, table))
    return encoded.decode("latin-1")


def base64_decode(data: BytesLike, alphabet: Union[str, bytes, None] = None) -> bytes:
    """Decode base64 text; raises ValueError on malformed input."""
    table = _alphabet_bytes(alphabet)
    raw = data.encode("latin-1") if isinstance(data, str) else bytes(data)
    if len(raw) & 3:
        raise ValueError("size must be a multiple of 4 bytes")

    inverse = [_INVALID] * 0x100
    for index, ch in enumerate(table):
        inverse[ch] = index
    inverse[ord("=")] = _PAD

    out = bytearray()
    last_offset = len(raw) - 4
    for offset in range(0, len(raw), 4):
        c1, c2, c3, c4 = (inverse[b] for b in raw[offset:offset + 4])
        if c4 == _PAD:
            if offset != last_offset:
                raise ValueError("string contains padding not at the end")
            if c3 == _PAD:
                if c1 >= 0x40 or c2 >= 0x40:
                    raise ValueError("string contains non-base64 characters")
                out.append(((c1 << 2) & 0xFC) | ((c2 >> 4) & 0x03))
            else:
                if c1 >= 0x40 or c2 >= 0x40 or c3 >= 0x40:
                    raise ValueError("string contains non-base64 characters")
                out.append(((c1 << 2) & 0xFC) | ((c2 >> 4) & 0x03))
                out.append(((c2 << 4) & 0xF0) | ((c3 >> 2) & 0x0F))
        else:
            if c1 >= 0x40 or c2 >= 0x40 or c3 >= 0x40 or c4 >= 0x40:
                raise ValueError("string contains non-base64 characters")
            out.append(((c1 << 2) | ((c2 >> 4) & 0x03)) & 0xFF)
            out.append(((c2 << 4) | ((c3 >> 2) & 0x0F)) & 0xFF)
            out.append(((c3 << 6) | c4) & 0xFF)
    return bytes(out)


_ROT13_FROM = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
_ROT13_TO = "NOPQRSTUVWXYZABCDEFGHIJKLMnopqrstuvwxyzabcdefghijklm"
_ROT13_STR = str.maketrans(_ROT13_FROM, _ROT13_TO)
_ROT13_BYTES = bytes.maketrans(_ROT13_FROM.encode("ascii"), _ROT13_TO.encode("ascii"))


def rot13(data: Union[str, bytes, bytearray]) -> Union[str, bytes]:
    """Rotate ASCII letters by 13 places; other characters pass unchanged."""
    if isinstance(data, str):
        return data.translate(_ROT13_STR)
    return bytes(data).translate(_ROT13_BYTES)