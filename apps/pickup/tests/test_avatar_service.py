"""
Tests for avatar_service: validation and image processing.
"""

from io import BytesIO

from PIL import Image

from pickup.services import avatar_service


def _make_image(width=100, height=100, fmt="JPEG", mode="RGB"):
    """Create a minimal test image and return its bytes."""
    color = (255, 0, 0, 128) if mode == "RGBA" else (255, 0, 0)
    img = Image.new(mode, (width, height), color=color)
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


class TestValidateAvatar:
    """Tests for validate_avatar()."""

    def test_valid_jpeg(self):
        is_valid, err = avatar_service.validate_avatar(_make_image(), "image/jpeg")
        assert is_valid is True
        assert err == ""

    def test_valid_png(self):
        is_valid, _ = avatar_service.validate_avatar(_make_image(fmt="PNG"), "image/png")
        assert is_valid is True

    def test_empty_file(self):
        is_valid, err = avatar_service.validate_avatar(b"", "image/jpeg")
        assert is_valid is False
        assert "empty" in err

    def test_too_large(self):
        data = b"\x00" * (avatar_service.MAX_FILE_SIZE_BYTES + 1)
        is_valid, err = avatar_service.validate_avatar(data, "image/jpeg")
        assert is_valid is False
        assert "5MB" in err

    def test_wrong_content_type(self):
        is_valid, err = avatar_service.validate_avatar(_make_image(), "application/pdf")
        assert is_valid is False
        assert "Invalid file type" in err

    def test_corrupted_image(self):
        is_valid, err = avatar_service.validate_avatar(b"not an image", "image/png")
        assert is_valid is False
        assert "corrupted" in err


class TestProcessAvatar:
    """Tests for process_avatar()."""

    def test_crops_to_square_jpeg(self):
        out = avatar_service.process_avatar(_make_image(width=800, height=400))
        img = Image.open(BytesIO(out))
        assert img.format == "JPEG"
        assert img.size == (avatar_service.AVATAR_SIZE, avatar_service.AVATAR_SIZE)

    def test_rgba_is_flattened(self):
        out = avatar_service.process_avatar(_make_image(fmt="PNG", mode="RGBA"))
        assert Image.open(BytesIO(out)).mode == "RGB"

    def test_small_image_is_upscaled(self):
        out = avatar_service.process_avatar(_make_image(width=64, height=64))
        assert Image.open(BytesIO(out)).size == (512, 512)

    def test_exif_orientation_is_applied(self):
        # Landscape sensor image, red left and blue right, tagged "rotate 90 CW"
        img = Image.new("RGB", (200, 100), color=(0, 0, 255))
        img.paste((255, 0, 0), (0, 0, 100, 100))
        exif = Image.Exif()
        exif[0x0112] = 6
        buf = BytesIO()
        img.save(buf, format="JPEG", exif=exif)

        out = Image.open(BytesIO(avatar_service.process_avatar(buf.getvalue())))
        top_r, _, top_b = out.getpixel((500, 10))
        bottom_r, _, bottom_b = out.getpixel((10, 500))
        assert top_r > top_b
        assert bottom_b > bottom_r
        assert 0x0112 not in out.getexif()
