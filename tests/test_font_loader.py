"""Tests for custom font upload."""

import base64

import pytest

from srtmotion.services.font_loader import FontUploadError, font_name_for, load_custom_font


@pytest.mark.parametrize("filename,expected", [
    ("My-Font.ttf", "MyFont"),
    ("Noto Sans KR.Bold.otf", "NotoSansKR"),
    ("font_1.woff2", "font1"),
])
def test_font_name_for(filename, expected):
    assert font_name_for(filename) == expected


def test_load_without_registration(tmp_path):
    path = tmp_path / "Fancy-Font.woff2"
    path.write_bytes(b"wOF2fake")
    font = load_custom_font(path, register=False)
    assert font.name == "FancyFont"
    assert font.mime_type == "font/woff2"
    assert font.data == "data:font/woff2;base64," + base64.b64encode(b"wOF2fake").decode("ascii")


def test_unsupported_extension(tmp_path):
    path = tmp_path / "font.pdf"
    path.write_bytes(b"%PDF")
    with pytest.raises(FontUploadError, match="Unsupported font format"):
        load_custom_font(path, register=False)


def test_missing_file(tmp_path):
    with pytest.raises(FontUploadError, match="Failed to read"):
        load_custom_font(tmp_path / "nope.ttf", register=False)


def test_empty_file(tmp_path):
    path = tmp_path / "empty.ttf"
    path.write_bytes(b"")
    with pytest.raises(FontUploadError, match="empty"):
        load_custom_font(path, register=False)


def test_unnamed_file(tmp_path):
    path = tmp_path / "---.ttf"
    path.write_bytes(b"data")
    with pytest.raises(FontUploadError):
        load_custom_font(path, register=False)


def test_invalid_font_rejected_by_qt(qapp, tmp_path):
    path = tmp_path / "Broken.ttf"
    path.write_bytes(b"this is not a font")
    with pytest.raises(FontUploadError, match="not a valid font"):
        load_custom_font(path)
