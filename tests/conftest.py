import struct
import zlib
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from img2pptx.template import write_starter_template


@pytest.fixture
def template(tmp_path: Path) -> Path:
    return write_starter_template(tmp_path / "template" / "PresentationTemplate.pptx")


@pytest.fixture
def make_image(tmp_path: Path):
    image_dir = tmp_path / "images"
    image_dir.mkdir()

    def _make(name: str, size=(400, 300), fmt: str = "PNG", **save_args) -> Path:
        img = Image.new("RGB", size, color=(73, 109, 137))
        d = ImageDraw.Draw(img)
        d.text((10, 10), name, fill=(255, 255, 0))
        path = image_dir / name
        img.save(path, format=fmt, **save_args)
        return path

    _make.dir = image_dir
    return _make


@pytest.fixture
def header_only_png(make_image):
    """Write a PNG holding just IHDR and IEND, claiming the given size."""

    def chunk(cid: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(cid + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + cid + data + struct.pack(">I", crc)

    def _make(name: str, width: int, height: int) -> Path:
        ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
        path = make_image.dir / name
        path.write_bytes(b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IEND", b""))
        return path

    return _make
