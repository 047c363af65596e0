# phosgkit

Small, dependency-free utilities for binary data, hashing, POSIX files and
simple image files.

## Modules

### `phosgkit.encoding`

- Byte swapping: `bswap16`, `bswap24`, `bswap32`, `bswap48`, `bswap64`, and
  the signed variants `bswap24s` and `bswap48s`.
- `bswap32f` / `bswap64f`: given a float, return its byte-swapped bit pattern
  as an int; given an int, byte-swap it and read the result as a float.
- Sign extension: `sign_extend(value, src_bits, dst_bits)`, `ext24`, `ext48`.
- `EndianValue`: a number held as raw bytes in a chosen `Endianness`
  (`LITTLE` or `BIG`). Its format is a struct character (`bBhHiIqQ` or
  `f`/`d`). It has `load`, `store`, `load_raw`, `store_raw`, `to_bytes` and
  `from_bytes`, and supports the in-place arithmetic and bitwise operators.
  Integers wrap to the field width.
- `base64_encode(data, alphabet=None)` returns `str`.
  `base64_decode(data, alphabet=None)` returns `bytes` and raises
  `ValueError` on malformed input. Both take an optional 64-character
  alphabet (`DEFAULT_ALPHABET`, `URLSAFE_ALPHABET` or your own).
- `rot13` works on `str` or `bytes`.

### `phosgkit.hashing`

- `fnv1a32(data, hash=FNV1A32_START)` and `fnv1a64(data, hash=FNV1A64_START)`
  can be chained by passing the previous result as `hash`.
- `sha1`, `sha256` and `md5` return raw digests as `bytes`. They use
  `hashlib`.
- `crc32(data, cs=0)` uses `zlib`.

### `phosgkit.filesystem`

- Paths: `basename`, `dirname`, `list_directory`, `getcwd`,
  `get_user_home_directory`, `readlink`, `realpath`.
- Stat: `stat` accepts a path, a descriptor or an open file. The module also
  has `lstat`, `isfile`, `isdir` and `islink`, which take a path or a stat
  result, and `lisfile` and `lisdir`.
- Descriptors: `read`, `read_all`, and exact transfers `readx`, `writex`,
  `preadx` and `pwritex`. The exact transfers raise `FdIOError` on a short
  read or write.
- Streams: `freadx`, `fwritex`, `fgetcx`, `fgets`, and `fopen`, which always
  opens in binary mode. Given `'-'` and a `dash_file`, `fopen` returns that
  stream, and closing the result leaves the stream open.
- Whole files: `load_file`, `save_file`, `rename`, and `unlink`, which takes
  an optional `recursive`.
- `ScopedFD`: owns a descriptor and closes it on `close()`, at the end of a
  `with` block, or on garbage collection.
- `pipe`, `make_fd_nonblocking`, and `Poll`. `Poll` has `add`, `remove`,
  `empty`, `fds` and `poll`, and `poll` returns `{fd: revents}`.
- Errors: `CannotStatFile`, `CannotOpenFile` and `FdIOError`, all subclasses
  of `OSError`.

### `phosgkit.image_codec`

- `decode_image(stream)` reads PPM (`P5`, `P6`, `P7`/PAM) and Windows bitmap
  (24-bit `BI_RGB`, 32-bit `BI_BITFIELDS`) images into a `DecodedImage`.
  A `DecodedImage` has `width`, `height`, `has_alpha`, `channel_width`,
  `max_value`, and `data`, a flat list of RGB or RGBA channel values.
  Unrecognised signatures raise `UnknownFormatError`.
- `encode_image(format, width, height, has_alpha, channel_width, max_value, data)`
  writes `ImageFormat.COLOR_PPM` (P6, or P7 with alpha), `WINDOWS_BITMAP`
  (8-bit channels only) or `PNG` (8-bit channels only).
  `GRAYSCALE_PPM` cannot be written.
- `mime_type_for_format` and `file_extension_for_format`.

## Examples

```python
from phosgkit.encoding import base64_encode, base64_decode, rot13, bswap32

base64_encode(b"111")      # "MTEx"
base64_decode("MTE=")      # b"11"
rot13("No matter how hard you try...")  # "Ab znggre ubj uneq lbh gel..."
bswap32(0x01234567)        # 0x67452301
```

```python
from phosgkit.hashing import crc32, fnv1a64, sha256

crc32(b"omg")              # 0xBF4FB41E
fnv1a64(b"omg hax")        # 0xE6CAC1F92EB65713
sha256(b"").hex()
```

```python
import io
from phosgkit.image_codec import ImageFormat, encode_image, decode_image

pixels = [255, 0, 0, 0, 0, 255]            # two RGB pixels, red then blue
ppm = encode_image(ImageFormat.COLOR_PPM, 2, 1, False, 8, 255, pixels)
# ppm == b"P6 2 1 255\n" + bytes(pixels)
decoded = decode_image(io.BytesIO(ppm))
assert decoded.data == pixels
```

```python
from phosgkit.filesystem import save_file, load_file, pipe, writex, readx

save_file("data.bin", b"0123456789")
assert load_file("data.bin") == b"0123456789"

r, w = pipe()
writex(w, b"omg")
assert readx(r, 3) == b"omg"
```

## What it does not do

- It has no image canvas. You can encode and decode flat lists of channel
  values, but there are no drawing, pixel-editing, blitting or resizing
  routines.
- It does not decode PNG files. PNG is write-only.
- It provides no command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```