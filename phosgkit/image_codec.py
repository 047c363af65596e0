"""Reading and writing PPM, Windows bitmap and PNG image files."""

from __future__ import annotations

import enum
import struct
import zlib
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Sequence, Tuple

from .filesystem import fgets, freadx

__all__ = [
    "ImageFormat",
    "UnknownFormatError",
    "DecodedImage",
    "mime_type_for_format",
    "file_extension_for_format",
    "decode_image",
    "encode_image",
]


class ImageFormat(enum.Enum):
    """File formats an image can be stored in."""

    GRAYSCALE_PPM = 0
    COLOR_PPM = 1
    WINDOWS_BITMAP = 2
    PNG = 3


class UnknownFormatError(ValueError):
    """The data does not start with a recognised image signature."""


@dataclass
class DecodedImage:
    """Pixel data read from an image file.

    ``data`` holds channel values row by row, three (RGB) or four (RGBA)
    values per pixel.
    """

    width: int
    height: int
    has_alpha: bool
    channel_width: int
    max_value: int
    data: List[int] = field(repr=False)


_MIME_TYPES = {
    ImageFormat.GRAYSCALE_PPM: "image/x-portable-pixmap",
    ImageFormat.COLOR_PPM: "image/x-portable-pixmap",
    ImageFormat.WINDOWS_BITMAP: "image/bmp",
    ImageFormat.PNG: "image/png",
}

_EXTENSIONS = {
    ImageFormat.GRAYSCALE_PPM: "ppm",
    ImageFormat.COLOR_PPM: "ppm",
    ImageFormat.WINDOWS_BITMAP: "bmp",
    ImageFormat.PNG: "png",
}


def mime_type_for_format(format: ImageFormat) -> str:
    """Return the MIME type for a format."""
    return _MIME_TYPES.get(format, "text/plain")


def file_extension_for_format(format: ImageFormat) -> str:
    """Return the usual file extension (without a dot) for a format."""
    return _EXTENSIONS.get(format, "raw")


# ---------------------------------------------------------------------------
# Channel packing

_STRUCT_CODES = {8: "B", 16: "H", 32: "I", 64: "Q"}


def _check_channel_width(channel_width: int) -> str:
    try:
        return _STRUCT_CODES[channel_width]
    except KeyError:
        raise ValueError("channel width must be 8, 16, 32, or 64") from None


def _pack_channels(values: Sequence[int], channel_width: int) -> bytes:
    code = _check_channel_width(channel_width)
    mask = (1 << channel_width) - 1
    if channel_width == 8:
        return bytes(v & mask for v in values)
    return struct.pack(f"={len(values)}{code}", *(v & mask for v in values))


def _unpack_channels(raw: bytes, channel_width: int) -> List[int]:
    code = _check_channel_width(channel_width)
    if channel_width == 8:
        return list(raw)
    count = len(raw) // (channel_width // 8)
    return list(struct.unpack(f"={count}{code}", raw))


def _channel_width_for_max(max_value: int) -> int:
    if max_value > 0xFFFFFFFF:
        return 64
    if max_value > 0xFFFF:
        return 32
    if max_value > 0xFF:
        return 16
    return 8


# ---------------------------------------------------------------------------
# Decoding

_WHITESPACE = b" \t\n\r\v\f"


def _scan_uint(stream: BinaryIO, pending: bytes) -> Tuple[Optional[int], bytes]:
    """Skip whitespace and read decimal digits; return (value, next byte)."""
    ch = pending if pending else stream.read(1)
    while ch and ch in _WHITESPACE:
        ch = stream.read(1)
    digits = bytearray()
    while ch and ch.isdigit():
        digits += ch
        ch = stream.read(1)
    if not digits:
        return None, ch
    return int(digits), ch


def _parse_uint(text: str) -> int:
    stripped = text.strip()
    digits = ""
    for ch in stripped:
        if not ch.isdigit():
            break
        digits += ch
    if not digits:
        raise ValueError(f"invalid number in PPM header: {text!r}")
    return int(digits)


def _read_ppm(stream: BinaryIO, grayscale: bool, extended: bool) -> DecodedImage:
    width = height = max_value = depth = 0

    if extended:
        if stream.read(1) != b"\n":
            raise ValueError("invalid extended PPM header")
        while True:
            line = fgets(stream).decode("latin-1").rstrip()
            if line.startswith("WIDTH "):
                width = _parse_uint(line[6:])
            elif line.startswith("HEIGHT "):
                height = _parse_uint(line[7:])
            elif line.startswith("DEPTH "):
                pass  # TUPLTYPE decides the layout
            elif line.startswith("MAXVAL "):
                max_value = _parse_uint(line[7:])
            elif line.startswith("TUPLTYPE "):
                tuple_type = line[9:]
                if tuple_type == "GRAYSCALE":
                    grayscale, depth = True, 3
                elif tuple_type == "GRAYSCALE_ALPHA":
                    grayscale, depth = True, 4
                elif tuple_type == "RGB":
                    grayscale, depth = False, 3
                elif tuple_type == "RGB_ALPHA":
                    grayscale, depth = False, 4
                else:
                    raise ValueError("unsupported tuple type in extended PPM image")
            elif line == "ENDHDR":
                break
            else:
                raise ValueError("unknown header command in extended PPM image")
    else:
        depth = 3
        pending = b""
        for name in ("width", "height", "max value"):
            value, pending = _scan_uint(stream, pending)
            if value is None:
                raise ValueError(f"cannot read {name} field in PPM header")
            if name == "width":
                width = value
            elif name == "height":
                height = value
            else:
                max_value = value
        if pending not in (b" ", b"\t", b"\n"):
            raise ValueError("whitespace character not present after PPM header")

    if width == 0:
        raise ValueError("width field in PPM header is zero or missing")
    if height == 0:
        raise ValueError("height field in PPM header is zero or missing")
    if max_value == 0:
        raise ValueError("max value field in PPM header is zero or missing")
    if depth == 0:
        raise ValueError("depth or format field in PPM header is zero or missing")
    if depth not in (3, 4):
        raise ValueError("depth or format field in PPM header has unsupported value")

    has_alpha = depth == 4
    channel_width = _channel_width_for_max(max_value)
    channels = (1 if grayscale else 3) + (1 if has_alpha else 0)
    raw = freadx(stream, width * height * channels * (channel_width // 8))
    values = _unpack_channels(raw, channel_width)

    if grayscale:
        expanded: List[int] = []
        for pixel in range(width * height):
            gray = values[pixel * channels]
            expanded += (gray, gray, gray)
            if has_alpha:
                expanded.append(values[pixel * channels + 1])
        values = expanded

    return DecodedImage(width, height, has_alpha, channel_width, max_value, values)


_BMP_FILE_HEADER = struct.Struct("<2sIHHI")
_BMP_INFO_SIZE = 124
_BMP_INFO_SIZE24 = 0x28
_BMP_INFO_FIELDS = struct.Struct("<IiiHHIIiiIIIIII")
_BITMASK_OFFSETS = {0xFF000000: 3, 0x00FF0000: 2, 0x0000FF00: 1, 0x000000FF: 0}


def _read_bmp(stream: BinaryIO, sig: bytes) -> DecodedImage:
    file_header = sig + freadx(stream, _BMP_FILE_HEADER.size - 2)
    magic, _, _, _, data_offset = _BMP_FILE_HEADER.unpack(file_header)
    if magic != b"BM":
        raise ValueError(
            f"bad signature in bitmap file ({int.from_bytes(magic, 'little'):04X})")

    header_size_raw = freadx(stream, 4)
    (header_size,) = struct.unpack("<I", header_size_raw)
    if header_size > _BMP_INFO_SIZE:
        raise ValueError(
            f"unsupported bitmap header: size is {header_size}, "
            f"maximum supported size is {_BMP_INFO_SIZE}")
    info = header_size_raw + freadx(stream, max(header_size - 4, 0))
    info = info.ljust(_BMP_INFO_SIZE, b"\0")
    (_, width, height, num_planes, bit_depth, compression, _, _, _, _, _,
     mask_r, mask_g, mask_b, mask_a) = _BMP_INFO_FIELDS.unpack_from(info)

    if bit_depth not in (24, 32):
        raise ValueError(
            f"can only load 24-bit or 32-bit bitmaps (this is a {bit_depth}-bit bitmap)")
    if num_planes != 1:
        raise ValueError("can only load 1-plane bitmaps")

    reverse_row_order = height < 0
    stream.seek(data_offset)
    w = width
    h = -height if reverse_row_order else height

    if compression == 0:  # BI_RGB
        has_alpha = False
        pixel_bytes = bit_depth // 8
        row_padding = (4 - ((w * pixel_bytes) % 4)) % 4
        data = [0] * (w * h * 3)
        for y in range(h - 1, -1, -1):
            row = freadx(stream, w * pixel_bytes)
            target_y = (h - y - 1) if reverse_row_order else y
            start = target_y * w * 3
            end = start + w * 3
            data[start:end:3] = row[2::pixel_bytes]
            data[start + 1:end:3] = row[1::pixel_bytes]
            data[start + 2:end:3] = row[0::pixel_bytes]
            if row_padding:
                stream.seek(row_padding, 1)

    elif compression == 3:  # BI_BITFIELDS
        if bit_depth != 32:
            raise ValueError("bitmap uses BI_BITFIELDS but bit depth is not 32")
        has_alpha = True
        try:
            offsets = [_BITMASK_OFFSETS[m] for m in (mask_r, mask_g, mask_b, mask_a)]
        except KeyError:
            raise ValueError("channel bit field is not 1-byte mask") from None
        data = [0] * (w * h * 4)
        for y in range(h - 1, -1, -1):
            row = freadx(stream, w * 4)
            target_y = (h - y - 1) if reverse_row_order else y
            start = target_y * w * 4
            end = start + w * 4
            for channel, offset in enumerate(offsets):
                data[start + channel:end:4] = row[offset::4]

    else:
        raise ValueError("can only load uncompressed or bitfield bitmaps")

    return DecodedImage(w, h, has_alpha, 8, 0xFF, data)


def decode_image(stream: BinaryIO) -> DecodedImage:
    """Read a PPM (P5, P6, P7) or Windows bitmap image from a binary stream."""
    sig = freadx(stream, 2)
    if sig == b"P5":
        return _read_ppm(stream, grayscale=True, extended=False)
    if sig == b"P6":
        return _read_ppm(stream, grayscale=False, extended=False)
    if sig == b"P7":
        return _read_ppm(stream, grayscale=False, extended=True)
    if sig == b"BM":
        return _read_bmp(stream, sig)
    raise UnknownFormatError(
        f"can't load image; type signature is {sig[0]:02X}{sig[1]:02X}")


# ---------------------------------------------------------------------------
# Encoding


def _encode_ppm(width: int, height: int, has_alpha: bool, channel_width: int,
                max_value: int, data: Sequence[int]) -> bytes:
    if has_alpha:
        header = (f"P7\nWIDTH {width}\nHEIGHT {height}\nDEPTH 4\nMAXVAL {max_value}\n"
                  f"TUPLTYPE RGB_ALPHA\nENDHDR\n")
    else:
        header = f"P6 {width} {height} {max_value}\n"
    return header.encode("ascii") + _pack_channels(data, channel_width)


def _encode_bmp(width: int, height: int, has_alpha: bool, channel_width: int,
                data: Sequence[int]) -> bytes:
    if channel_width != 8:
        raise ValueError("can't save bmp with more than 8-bit channels")

    pixel_bytes = 4 if has_alpha else 3
    row_padding = (4 - ((width * pixel_bytes) % 4)) % 4
    header_size = _BMP_FILE_HEADER.size + (_BMP_INFO_SIZE if has_alpha else _BMP_INFO_SIZE24)
    file_size = header_size + width * height * pixel_bytes + row_padding * height

    out = bytearray(_BMP_FILE_HEADER.pack(b"BM", file_size, 0, 0, header_size))
    info = bytearray(_BMP_INFO_SIZE)
    _BMP_INFO_FIELDS.pack_into(
        info, 0,
        header_size - _BMP_FILE_HEADER.size,
        width,
        height,
        1,
        32 if has_alpha else 24,
        3 if has_alpha else 0,
        width * height * 4 if has_alpha else 0,
        0x00000B12,
        0x00000B12,
        0,
        0,
        0x000000FF if has_alpha else 0,
        0x0000FF00 if has_alpha else 0,
        0x00FF0000 if has_alpha else 0,
        0xFF000000 if has_alpha else 0,
    )
    if has_alpha:
        struct.pack_into("<I", info, 56, 0x73524742)  # LCS_sRGB
        struct.pack_into("<I", info, 108, 8)  # LCS_GM_ABS_COLORIMETRIC
    out += info[:header_size - _BMP_FILE_HEADER.size]

    pixels = bytes(v & 0xFF for v in data)
    row_len = width * pixel_bytes
    padding = bytes(row_padding)
    for y in range(height - 1, -1, -1):
        row = pixels[y * row_len:(y + 1) * row_len]
        if has_alpha:
            out += row
        else:
            bgr = bytearray(row_len)
            bgr[0::3] = row[2::3]
            bgr[1::3] = row[1::3]
            bgr[2::3] = row[0::3]
            out += bgr
            out += padding
    return bytes(out)


def _png_chunk(chunk_type: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + chunk_type + payload + struct.pack(">I", crc)


def _encode_png(width: int, height: int, has_alpha: bool, channel_width: int,
                data: Sequence[int]) -> bytes:
    if channel_width != 8:
        raise ValueError("can't save png with more than 8-bit channels")

    pixel_size = 4 if has_alpha else 3
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6 if has_alpha else 2, 0, 0, 0)
    gama = struct.pack(">I", 45455)  # 1/2.2

    pixels = bytes(v & 0xFF for v in data)
    row_len = width * pixel_size
    raw = b"".join(b"\0" + pixels[y * row_len:(y + 1) * row_len] for y in range(height))

    return b"".join((
        b"\x89PNG\r\n\x1a\n",
        _png_chunk(b"IHDR", ihdr),
        _png_chunk(b"gAMA", gama),
        _png_chunk(b"IDAT", zlib.compress(raw, 9)),
        _png_chunk(b"IEND", b""),
    ))


def encode_image(format: ImageFormat, width: int, height: int, has_alpha: bool,
                 channel_width: int, max_value: int, data: Sequence[int]) -> bytes:
    """Encode channel values as an image file in the given format."""
    try:
        format = ImageFormat(format)
    except ValueError:
        raise ValueError("unknown file format") from None
    _check_channel_width(channel_width)
    expected = width * height * (4 if has_alpha else 3)
    if len(data) != expected:
        raise ValueError(f"expected {expected} channel values, got {len(data)}")

    if format is ImageFormat.GRAYSCALE_PPM:
        raise ValueError("can't save grayscale ppm files")
    if format is ImageFormat.COLOR_PPM:
        return _encode_ppm(width, height, has_alpha, channel_width, max_value, data)
    if format is ImageFormat.WINDOWS_BITMAP:
        return _encode_bmp(width, height, has_alpha, channel_width, data)
    return _encode_png(width, height, has_alpha, channel_width, data)