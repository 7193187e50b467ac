"""Unit tests for voucher QR rendering."""

import io

import pytest
from PIL import Image

from cafe_ops.services.voucher_qr import render_qr_png

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def test_renders_png():
    png = render_qr_png("CAFEOS-1700000000000-k3j9qz1x8m2ab")

    assert png.startswith(PNG_MAGIC)
    image = Image.open(io.BytesIO(png))
    width, height = image.size
    assert width == height
    assert width % 10 == 0


def test_box_size_scales_image():
    small = Image.open(io.BytesIO(render_qr_png("CAFEOS-1-abc", box_size=2, border=1)))
    large = Image.open(io.BytesIO(render_qr_png("CAFEOS-1-abc", box_size=4, border=1)))

    assert large.size[0] == 2 * small.size[0]


@pytest.mark.parametrize("code", ["", None])
def test_empty_code_rejected(code):
    with pytest.raises(ValueError):
        render_qr_png(code)
