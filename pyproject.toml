[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "phosgkit"
version = "0.1.0"
description = "Byte-order helpers, base64 and rot13, hashes, POSIX file utilities and PPM/BMP/PNG image encoding"
requires-python = ">=3.10"
dependencies = []
keywords = ["endianness", "bswap", "base64", "rot13", "fnv1a", "crc32", "sha256", "md5", "filesystem", "poll", "ppm", "bmp", "png"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["phosgkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
