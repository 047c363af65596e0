import io
import struct
import zlib

import pytest

from phosgkit.filesystem import FdIOError
from phosgkit.image_codec import (
    DecodedImage,
    ImageFormat,
    UnknownFormatError,
    decode_image,
    encode_image,
    file_extension_for_format,
    mime_type_for_format,
)


def _pixels(width, height, has_alpha, max_value=255):
    count = width * height * (4 if has_alpha else 3)
    return [(i * 37 + 11) % (max_value + 1) for i in range(count)]


def _decode(data):
    return decode_image(io.BytesIO(data))


def _png_chunks(data):
    offset = 8
    chunks = []
    while offset < len(data):
        (length,) = struct.unpack_from(">I", data, offset)
        chunk_type = data[offset + 4:offset + 8]
        payload = data[offset + 8:offset + 8 + length]
        (crc,) = struct.unpack_from(">I", data, offset + 8 + length)
        chunks.append((chunk_type, payload, crc))
        offset += 12 + length
    return chunks


def test_mime_types_and_extensions():
    assert mime_type_for_format(ImageFormat.COLOR_PPM) == "image/x-portable-pixmap"
    assert mime_type_for_format(ImageFormat.GRAYSCALE_PPM) == "image/x-portable-pixmap"
    assert mime_type_for_format(ImageFormat.WINDOWS_BITMAP) == "image/bmp"
    assert mime_type_for_format(ImageFormat.PNG) == "image/png"
    assert file_extension_for_format(ImageFormat.COLOR_PPM) == "ppm"
    assert file_extension_for_format(ImageFormat.WINDOWS_BITMAP) == "bmp"
    assert file_extension_for_format(ImageFormat.PNG) == "png"


def test_p6_header_bytes():
    data = [1, 2, 3, 4, 5, 6]
    encoded = encode_image(ImageFormat.COLOR_PPM, 2, 1, False, 8, 255, data)
    assert encoded == b"P6 2 1 255\n" + bytes(data)


def test_p7_header_for_alpha():
    data = _pixels(1, 1, True)
    encoded = encode_image(ImageFormat.COLOR_PPM, 1, 1, True, 8, 255, data)
    assert encoded.startswith(
        b"P7\nWIDTH 1\nHEIGHT 1\nDEPTH 4\nMAXVAL 255\nTUPLTYPE RGB_ALPHA\nENDHDR\n")
    assert encoded.endswith(bytes(data))


@pytest.mark.parametrize("has_alpha", [False, True])
@pytest.mark.parametrize("channel_width", [8, 16, 32, 64])
def test_ppm_round_trip(has_alpha, channel_width):
    max_value = (1 << channel_width) - 1
    data = [(v * 0x0101010101010101) & max_value for v in _pixels(5, 3, has_alpha)]
    encoded = encode_image(ImageFormat.COLOR_PPM, 5, 3, has_alpha,
                           channel_width, max_value, data)
    decoded = _decode(encoded)
    assert decoded == DecodedImage(5, 3, has_alpha, channel_width, max_value, data)


def test_grayscale_p5_expands_to_color():
    decoded = _decode(b"P5 2 1 255\n" + bytes([10, 200]))
    assert decoded.has_alpha is False
    assert decoded.data == [10, 10, 10, 200, 200, 200]


def test_grayscale_alpha_extended_ppm():
    header = (b"P7\nWIDTH 2\nHEIGHT 1\nDEPTH 2\nMAXVAL 255\n"
              b"TUPLTYPE GRAYSCALE_ALPHA\nENDHDR\n")
    decoded = _decode(header + bytes([10, 20, 30, 40]))
    assert decoded.has_alpha is True
    assert decoded.data == [10, 10, 10, 20, 30, 30, 30, 40]


def test_ppm_max_value_picks_channel_width():
    decoded = _decode(b"P6 1 1 1000\n" + struct.pack("=3H", 1, 2, 1000))
    assert decoded.channel_width == 16
    assert decoded.max_value == 1000
    assert decoded.data == [1, 2, 1000]


def test_ppm_header_errors():
    with pytest.raises(ValueError, match="whitespace character"):
        _decode(b"P6 1 1 255x" + bytes(3))
    with pytest.raises(ValueError, match="width field"):
        _decode(b"P6 0 1 255\n" + bytes(3))
    with pytest.raises(ValueError, match="cannot read height"):
        _decode(b"P6 1 z 255\n")
    with pytest.raises(ValueError, match="unknown header command"):
        _decode(b"P7\nBOGUS 1\n")
    with pytest.raises(ValueError, match="unsupported tuple type"):
        _decode(b"P7\nTUPLTYPE CMYK\n")


def test_ppm_short_data_raises():
    with pytest.raises(FdIOError):
        _decode(b"P6 2 2 255\n" + bytes(5))


def test_unknown_signature():
    with pytest.raises(UnknownFormatError):
        _decode(b"GIF89a")


def test_png_cannot_be_decoded():
    encoded = encode_image(ImageFormat.PNG, 1, 1, False, 8, 255, [1, 2, 3])
    with pytest.raises(UnknownFormatError):
        _decode(encoded)


@pytest.mark.parametrize("width,height", [(1, 1), (3, 2), (4, 5), (7, 3)])
@pytest.mark.parametrize("has_alpha", [False, True])
def test_bmp_round_trip(width, height, has_alpha):
    data = _pixels(width, height, has_alpha)
    encoded = encode_image(ImageFormat.WINDOWS_BITMAP, width, height, has_alpha,
                           8, 255, data)
    assert encoded[:2] == b"BM"
    (file_size,) = struct.unpack_from("<I", encoded, 2)
    assert file_size == len(encoded)
    decoded = _decode(encoded)
    assert decoded == DecodedImage(width, height, has_alpha, 8, 255, data)


def test_bmp_header_sizes():
    plain = encode_image(ImageFormat.WINDOWS_BITMAP, 1, 1, False, 8, 255, [1, 2, 3])
    (offset,) = struct.unpack_from("<I", plain, 10)
    assert offset == 54
    assert plain[54:57] == bytes([3, 2, 1])


def test_bmp_top_down_rows():
    data = _pixels(2, 2, False)
    encoded = bytearray(
        encode_image(ImageFormat.WINDOWS_BITMAP, 2, 2, False, 8, 255, data))
    struct.pack_into("<i", encoded, 22, -2)
    decoded = _decode(bytes(encoded))
    assert decoded.height == 2
    assert decoded.data == data[6:] + data[:6]


def test_bmp_bad_bit_depth():
    encoded = bytearray(
        encode_image(ImageFormat.WINDOWS_BITMAP, 1, 1, False, 8, 255, [1, 2, 3]))
    struct.pack_into("<H", encoded, 28, 16)
    with pytest.raises(ValueError, match="24-bit or 32-bit"):
        _decode(bytes(encoded))


def test_bmp_bad_bitfield_mask():
    encoded = bytearray(
        encode_image(ImageFormat.WINDOWS_BITMAP, 1, 1, True, 8, 255, [1, 2, 3, 4]))
    struct.pack_into("<I", encoded, 54, 0x12345678)
    with pytest.raises(ValueError, match="1-byte mask"):
        _decode(bytes(encoded))


def test_bmp_requires_8_bit_channels():
    with pytest.raises(ValueError):
        encode_image(ImageFormat.WINDOWS_BITMAP, 1, 1, False, 16, 65535, [1, 2, 3])


def test_grayscale_save_is_refused():
    with pytest.raises(ValueError, match="grayscale"):
        encode_image(ImageFormat.GRAYSCALE_PPM, 1, 1, False, 8, 255, [1, 2, 3])


def test_wrong_data_length():
    with pytest.raises(ValueError):
        encode_image(ImageFormat.COLOR_PPM, 2, 2, False, 8, 255, [1, 2, 3])


@pytest.mark.parametrize("has_alpha", [False, True])
def test_png_structure(has_alpha):
    data = _pixels(3, 2, has_alpha)
    encoded = encode_image(ImageFormat.PNG, 3, 2, has_alpha, 8, 255, data)
    assert encoded[:8] == b"\x89PNG\r\n\x1a\n"
    chunks = _png_chunks(encoded)
    assert [c[0] for c in chunks] == [b"IHDR", b"gAMA", b"IDAT", b"IEND"]
    for chunk_type, payload, crc in chunks:
        assert zlib.crc32(chunk_type + payload) == crc
    assert chunks[0][1] == struct.pack(">IIBBBBB", 3, 2, 8, 6 if has_alpha else 2, 0, 0, 0)
    assert chunks[1][1] == struct.pack(">I", 45455)
    row_len = 3 * (4 if has_alpha else 3)
    expected = b"".join(b"\0" + bytes(data[y * row_len:(y + 1) * row_len])
                        for y in range(2))
    assert zlib.decompress(chunks[2][1]) == expected
    assert encoded.endswith(b"\x00\x00\x00\x00IEND\xaeB`\x82")


def test_png_requires_8_bit_channels():
    with pytest.raises(ValueError):
        encode_image(ImageFormat.PNG, 1, 1, False, 32, 0xFFFFFFFF, [1, 2, 3])