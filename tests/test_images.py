"""Tests for image decoding helpers."""

from __future__ import annotations

import base64

import pytest

from mova.utils.images import decode_image, split_data_url, to_data_url

RAW = b"\x89PNG\r\n\x1a\nfake"
B64 = base64.b64encode(RAW).decode("ascii")


def test_plain_base64_defaults_to_png() -> None:
    assert decode_image(B64) == (RAW, "image/png")


def test_data_url_media_type_is_used() -> None:
    assert decode_image(f"data:image/jpeg;base64,{B64}") == (RAW, "image/jpeg")


def test_explicit_media_type_wins_and_jpg_is_normalized() -> None:
    assert decode_image(f"data:image/png;base64,{B64}", "image/jpg") == (RAW, "image/jpeg")


@pytest.mark.parametrize(
    "value, media_type",
    [
        ("not base64!!", None),
        ("", None),
        (B64, "application/pdf"),
        ("data:image/png,plain-text", None),
    ],
)
def test_invalid_images_raise(value: str, media_type: str | None) -> None:
    with pytest.raises(ValueError):
        decode_image(value, media_type)


def test_split_plain_value() -> None:
    assert split_data_url(B64) == (None, B64)


def test_to_data_url() -> None:
    assert to_data_url(RAW, "image/webp") == f"data:image/webp;base64,{B64}"
