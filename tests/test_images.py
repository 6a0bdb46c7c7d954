import base64
import io
from pathlib import Path

import pytest
import requests
from PIL import Image

from wood_grain import images as images_module
from wood_grain.images import (
    GrainImageError,
    ImageStatus,
    check_grain_images,
    compute_target_size,
    prepare_grain_image,
)
from wood_grain.manifest import SpeciesImageEntry

ASH = SpeciesImageEntry("Ash", "ash_400.jpg")
BEECH = SpeciesImageEntry("Beech", "beech_400.jpg")
BIRCH = SpeciesImageEntry("Birch", "birch_400.jpg")
TEAK = SpeciesImageEntry("Teak", "teak_400.jpg")
POPLAR = SpeciesImageEntry("Poplar", "poplar_400.jpg")


def _jpeg_bytes(size: tuple[int, int]) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 150, 100)).save(buffer, format="JPEG", quality=90)
    return buffer.getvalue()


def test_compute_target_size_landscape_and_portrait():
    assert compute_target_size(1600, 1200, 400) == (400, 300)
    assert compute_target_size(1200, 1600, 400) == (300, 400)
    assert compute_target_size(400, 250, 400) == (400, 250)


def test_compute_target_size_rejects_bad_input():
    with pytest.raises(ValueError, match="Invalid image size"):
        compute_target_size(0, 100, 400)
    with pytest.raises(ValueError, match="must be > 0"):
        compute_target_size(100, 100, 0)


def test_check_grain_images_reports_each_status(tmp_path: Path):
    (tmp_path / "ash_400.jpg").write_bytes(_jpeg_bytes((400, 300)))
    (tmp_path / "beech_400.jpg").write_bytes(_jpeg_bytes((800, 600)))
    Image.new("RGB", (400, 400)).save(tmp_path / "birch_400.jpg", format="PNG")
    (tmp_path / "teak_400.jpg").write_text("not an image", encoding="utf-8")

    checks = check_grain_images([ASH, BEECH, BIRCH, TEAK, POPLAR], str(tmp_path))

    assert [check.status for check in checks] == [
        ImageStatus.OK,
        ImageStatus.WRONG_SIZE,
        ImageStatus.WRONG_FORMAT,
        ImageStatus.UNREADABLE,
        ImageStatus.MISSING,
    ]
    assert checks[0].size == (400, 300)
    assert "expected 400px" in checks[1].detail
    assert checks[4].path == str(tmp_path / "poplar_400.jpg")


def test_check_grain_images_size_check_can_be_disabled(tmp_path: Path):
    (tmp_path / "beech_400.jpg").write_bytes(_jpeg_bytes((800, 600)))

    checks = check_grain_images([BEECH], str(tmp_path), expected_px=0)

    assert checks[0].status == ImageStatus.OK


def test_prepare_grain_image_from_local_png(tmp_path: Path):
    source = tmp_path / "photo.png"
    Image.new("RGBA", (1200, 900), (120, 80, 40, 255)).save(source, format="PNG")
    dest = tmp_path / "images" / "ash_400.jpg"

    result = prepare_grain_image(str(source), str(dest))

    assert result == str(dest)
    with Image.open(dest) as im:
        assert im.format == "JPEG"
        assert im.mode == "RGB"
        assert im.size == (400, 300)
    assert check_grain_images([ASH], str(dest.parent))[0].status == ImageStatus.OK


def test_prepare_grain_image_from_data_uri(tmp_path: Path):
    payload = base64.b64encode(_jpeg_bytes((200, 500))).decode("ascii")
    dest = tmp_path / "teak_400.jpg"

    prepare_grain_image(f"data:image/jpeg;base64,{payload}", str(dest))

    with Image.open(dest) as im:
        assert im.size == (160, 400)


def test_prepare_grain_image_from_url(tmp_path: Path, monkeypatch):
    calls = []

    class FakeResponse:
        content = _jpeg_bytes((800, 800))

        def raise_for_status(self):
            return None

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse()

    monkeypatch.setattr(images_module.requests, "get", fake_get)
    dest = tmp_path / "birch_400.jpg"

    prepare_grain_image("https://example.com/birch.jpg", str(dest))

    assert calls == [("https://example.com/birch.jpg", images_module.DOWNLOAD_TIMEOUT_S)]
    with Image.open(dest) as im:
        assert im.size == (400, 400)


def test_prepare_grain_image_wraps_http_errors(tmp_path: Path, monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(images_module.requests, "get", fake_get)

    with pytest.raises(GrainImageError, match="Failed to download"):
        prepare_grain_image("https://example.com/birch.jpg", str(tmp_path / "birch_400.jpg"))


def test_prepare_grain_image_missing_source(tmp_path: Path):
    with pytest.raises(FileNotFoundError, match="Source image does not exist"):
        prepare_grain_image(str(tmp_path / "missing.jpg"), str(tmp_path / "out.jpg"))


def test_prepare_grain_image_undecodable_source(tmp_path: Path):
    source = tmp_path / "notes.txt"
    source.write_text("just text", encoding="utf-8")

    with pytest.raises(GrainImageError, match="Could not decode"):
        prepare_grain_image(str(source), str(tmp_path / "out.jpg"))
    assert not (tmp_path / "out.jpg").exists()


def test_prepare_grain_image_directory_source(tmp_path: Path):
    with pytest.raises(GrainImageError, match="not a file"):
        prepare_grain_image(str(tmp_path), str(tmp_path / "out.jpg"))


def test_prepare_grain_image_decompression_bomb(tmp_path: Path, monkeypatch):
    source = tmp_path / "huge.png"
    Image.new("RGB", (64, 64)).save(source, format="PNG")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    with pytest.raises(GrainImageError, match="Could not decode"):
        prepare_grain_image(str(source), str(tmp_path / "out.jpg"))
