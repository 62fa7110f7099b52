"""Tests for img2pptx.imaging - reading and classifying image files."""

import pytest
from PIL import Image
from PIL.TiffImagePlugin import IFDRational

from img2pptx.errors import ImageError, InvalidImageError, UnsupportedImageFormatError
from img2pptx.geometry import EMU_PER_INCH
from img2pptx.imaging import ImageFormat, load_image


class TestLoadImage:
    @pytest.mark.parametrize(
        "name, fmt, expected",
        [
            ("a.png", "PNG", ImageFormat.PNG),
            ("b.jpg", "JPEG", ImageFormat.JPEG),
            ("c.gif", "GIF", ImageFormat.GIF),
            ("d.bmp", "BMP", ImageFormat.BMP),
            ("e.tif", "TIFF", ImageFormat.TIFF),
        ],
    )
    def test_supported_formats(self, make_image, name, fmt, expected):
        path = make_image(name, fmt=fmt)
        payload = load_image(path)

        assert payload.format is expected
        assert payload.blob == path.read_bytes()
        assert payload.name == path.stem
        assert payload.description == path.stem
        assert payload.content_type.startswith("image/")
        assert (payload.geometry.width_px, payload.geometry.height_px) == (400, 300)

    def test_missing_resolution_defaults_to_96_dpi(self, make_image):
        payload = load_image(make_image("plain.png", size=(960, 480)))
        assert payload.geometry.cx == 10 * EMU_PER_INCH
        assert payload.geometry.cy == 5 * EMU_PER_INCH

    def test_jpeg_resolution_used(self, make_image):
        payload = load_image(make_image("print.jpg", size=(720, 360), fmt="JPEG", dpi=(72, 72)))
        assert payload.geometry.cx == 10 * EMU_PER_INCH
        assert payload.geometry.cy == 5 * EMU_PER_INCH

    def test_large_image_bounded(self, make_image):
        payload = load_image(make_image("wide.png", size=(2048, 1080)))
        assert (payload.geometry.width_px, payload.geometry.height_px) == (6144, 720)

    def test_not_an_image(self, make_image):
        path = make_image.dir / "notes.png"
        path.write_text("this is not a picture")
        with pytest.raises(UnsupportedImageFormatError) as excinfo:
            load_image(path)
        assert excinfo.value.path == path
        assert str(path) in str(excinfo.value)

    def test_format_outside_supported_set(self, make_image):
        path = make_image("portable.png", fmt="PPM")
        with pytest.raises(UnsupportedImageFormatError, match="PPM"):
            load_image(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageError) as excinfo:
            load_image(tmp_path / "gone.png")
        assert excinfo.value.path == tmp_path / "gone.png"


class TestDamagedInput:
    def test_oversized_image_reported(self, header_only_png):
        path = header_only_png("poster.png", 20000, 10000)

        with pytest.raises(InvalidImageError) as excinfo:
            load_image(path)
        assert excinfo.value.path == path

    def test_truncated_data_reported(self, make_image):
        path = make_image("cut.png")
        blob = path.read_bytes()
        path.write_bytes(blob[: len(blob) // 2])

        with pytest.raises(InvalidImageError) as excinfo:
            load_image(path)
        assert str(path) in str(excinfo.value)

    def test_tiff_undefined_resolution_rejected(self, make_image):
        path = make_image.dir / "scan.tif"
        Image.new("RGB", (40, 30)).save(
            path, format="TIFF", tiffinfo={282: IFDRational(0, 0), 283: IFDRational(0, 0), 296: 2}
        )

        with pytest.raises(InvalidImageError, match="resolution") as excinfo:
            load_image(path)
        assert excinfo.value.path == path

    def test_bmp_unspecified_resolution_defaults_to_96_dpi(self, make_image):
        path = make_image("paint.bmp", size=(400, 300), fmt="BMP")
        blob = bytearray(path.read_bytes())
        # biXPelsPerMeter / biYPelsPerMeter
        blob[38:46] = bytes(8)
        path.write_bytes(bytes(blob))

        payload = load_image(path)
        assert payload.format is ImageFormat.BMP
        assert payload.geometry.cx == 400 * EMU_PER_INCH // 96
        assert payload.geometry.cy == 300 * EMU_PER_INCH // 96
