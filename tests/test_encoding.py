import pytest

from phosgkit.encoding import (
    URLSAFE_ALPHABET,
    EndianValue,
    Endianness,
    base64_decode,
    base64_encode,
    bswap16,
    bswap24,
    bswap24s,
    bswap32,
    bswap32f,
    bswap48,
    bswap48s,
    bswap64,
    bswap64f,
    ext24,
    rot13,
    sign_extend,
)


@pytest.mark.parametrize(
    "value,src,dst,expected",
    [
        (0x00, 8, 16, 0x0000),
        (0x01, 8, 16, 0x0001),
        (0x7F, 8, 16, 0x007F),
        (0x80, 8, 16, 0xFF80),
        (0xFF, 8, 16, 0xFFFF),
        (0x00, 8, 32, 0x00000000),
        (0x01, 8, 32, 0x00000001),
        (0x7F, 8, 32, 0x0000007F),
        (0x80, 8, 32, 0xFFFFFF80),
        (0xFF, 8, 32, 0xFFFFFFFF),
        (0x00, 8, 64, 0x0000000000000000),
        (0x01, 8, 64, 0x0000000000000001),
        (0x7F, 8, 64, 0x000000000000007F),
        (0x80, 8, 64, 0xFFFFFFFFFFFFFF80),
        (0xFF, 8, 64, 0xFFFFFFFFFFFFFFFF),
        (0x0000, 16, 32, 0x00000000),
        (0x0001, 16, 32, 0x00000001),
        (0x7FFF, 16, 32, 0x00007FFF),
        (0x8000, 16, 32, 0xFFFF8000),
        (0xFFFF, 16, 32, 0xFFFFFFFF),
        (0x0000, 16, 64, 0x0000000000000000),
        (0x0001, 16, 64, 0x0000000000000001),
        (0x7FFF, 16, 64, 0x0000000000007FFF),
        (0x8000, 16, 64, 0xFFFFFFFFFFFF8000),
        (0xFFFF, 16, 64, 0xFFFFFFFFFFFFFFFF),
        (0x00000000, 32, 64, 0x0000000000000000),
        (0x00000001, 32, 64, 0x0000000000000001),
        (0x7FFFFFFF, 32, 64, 0x000000007FFFFFFF),
        (0x80000000, 32, 64, 0xFFFFFFFF80000000),
        (0xFFFFFFFF, 32, 64, 0xFFFFFFFFFFFFFFFF),
    ],
)
def test_sign_extend(value, src, dst, expected):
    assert sign_extend(value, src, dst) == expected


def test_bswap_values():
    assert bswap16(0x0123) == 0x2301
    assert bswap24(0x012345) == 0x452301
    assert bswap24(0x01234567) == 0x674523
    assert bswap32(0x01234567) == 0x67452301
    assert bswap64(0x0123456789ABCDEF) == 0xEFCDAB8967452301


def test_bswap_negative_inputs():
    assert bswap16(-1) == 0xFFFF
    assert bswap24(-1) == 0x00FFFFFF
    assert bswap24s(-1) == -1
    assert bswap32(-1) == 0xFFFFFFFF
    assert bswap64(-1) == 0xFFFFFFFFFFFFFFFF
    assert bswap16(-2) == (-257) & 0xFFFF
    assert bswap24s(-2) == -65537
    assert bswap32(-2) == (-16777217) & 0xFFFFFFFF
    assert bswap64(-2) == (-72057594037927937) & 0xFFFFFFFFFFFFFFFF


@pytest.mark.parametrize("value", [0, 1, 0x123456789ABC, 0xFFFFFFFFFFFF, 0x800000000001])
def test_bswap48_is_involution(value):
    assert bswap48(bswap48(value)) == value


def test_ext24():
    assert ext24(0x800000) == -0x800000
    assert ext24(0x7FFFFF) == 0x7FFFFF


def test_float_bswaps():
    assert bswap32f(0x66662640) == pytest.approx(2.6, rel=1e-6)
    assert bswap32f(2.6) == 0x66662640
    assert bswap64f(0xCDCCCCCCCCCC0840) == 3.1
    assert bswap64f(3.1) == 0xCDCCCCCCCCCC0840


def test_reverse_endian_uint32():
    x = EndianValue("I", Endianness.reverse())
    x.store(3)
    assert x.load() == 3
    assert x.load_raw() == 0x03000000
    assert int(x) == 3


def test_reverse_endian_uint64():
    x = EndianValue("Q", Endianness.reverse(), 0x0102030405060708)
    assert x == 0x0102030405060708
    assert x.load_raw() == 0x0807060504030201


def test_reverse_endian_double():
    x = EndianValue("d", Endianness.reverse(), 1.0)
    assert x == 1.0
    assert x.load_raw() == 0x000000000000F03F


def test_little_and_big_share_bytes():
    le = EndianValue("I", Endianness.LITTLE, 0x01020304)
    be = EndianValue.from_bytes("I", Endianness.BIG, le.to_bytes())
    assert be.load() == 0x04030201
    assert le.to_bytes()[0] == 0x04

    be.store(0x01020304)
    le = EndianValue.from_bytes("I", Endianness.LITTLE, be.to_bytes())
    assert le.load() == 0x04030201
    assert be.to_bytes()[0] == 0x01


def test_same_endian_raw_matches_value():
    x = EndianValue("I", Endianness.native(), 0x01020304)
    assert x.load_raw() == 0x01020304
    x.store_raw(0xAABBCCDD)
    assert x.load() == 0xAABBCCDD


def test_in_place_arithmetic_wraps():
    x = EndianValue("H", Endianness.BIG, 0xFFFF)
    x += 2
    assert x.load() == 1
    x <<= 4
    assert x.load() == 16
    x -= 17
    assert x.load() == 0xFFFF


def test_signed_truncating_division():
    x = EndianValue("i", Endianness.BIG, -7)
    x /= 2
    assert x.load() == -3
    y = EndianValue("i", Endianness.BIG, -7)
    y %= 2
    assert y.load() == -1


def test_from_bytes_wrong_size():
    with pytest.raises(ValueError):
        EndianValue.from_bytes("I", Endianness.LITTLE, b"\x00\x01")


def test_bad_format():
    with pytest.raises(ValueError):
        EndianValue("x", Endianness.LITTLE)


@pytest.mark.parametrize(
    "raw,encoded",
    [
        (b"", ""),
        (b"1", "MQ=="),
        (b"11", "MTE="),
        (b"111", "MTEx"),
        (b"1112", "MTExMg=="),
        (b"11122", "MTExMjI="),
        (b"111222", "MTExMjIy"),
    ],
)
def test_base64(raw, encoded):
    assert base64_encode(raw) == encoded
    assert base64_decode(encoded) == raw


@pytest.mark.parametrize("raw", [b"", b"\xfb", b"\xfb\xff", bytes(range(256))])
def test_base64_urlsafe_round_trip(raw):
    encoded = base64_encode(raw, URLSAFE_ALPHABET)
    assert "+" not in encoded and "/" not in encoded
    assert base64_decode(encoded, URLSAFE_ALPHABET) == raw


def test_base64_decode_bad_length():
    with pytest.raises(ValueError, match="multiple of 4"):
        base64_decode("MQ=")


def test_base64_decode_padding_in_middle():
    with pytest.raises(ValueError, match="padding"):
        base64_decode("MQ==MTEx")


def test_base64_decode_invalid_character():
    with pytest.raises(ValueError, match="non-base64"):
        base64_decode("M!Ex")


def test_base64_bad_alphabet():
    with pytest.raises(ValueError):
        base64_encode(b"abc", "ABC")


def test_rot13():
    assert rot13("No matter how hard you try...") == "Ab znggre ubj uneq lbh gel..."
    assert rot13(b"No matter how hard you try...") == b"Ab znggre ubj uneq lbh gel..."


def test_rot13_round_trip():
    text = "Hello, World! 123"
    assert rot13(rot13(text)) == text