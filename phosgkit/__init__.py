"""Byte-order and base64 helpers, hashes, POSIX file utilities and PPM/BMP/PNG image encoding."""

__version__ = "0.1.0"
__all__ = [
    "encoding",
    "filesystem",
    "hashing",
    "image_codec",
]