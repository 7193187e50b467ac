"""Voucher QR image generation.

The image encodes the purchase's QR token verbatim so that a scan yields
exactly the string a staff member could type in by hand.
"""

import io

import qrcode

from cafe_ops.logging_config import get_logger

logger = get_logger(__name__)


def render_qr_png(code: str, box_size: int = 10, border: int = 4) -> bytes:
    """Render ``code`` as a PNG QR image.

    Args:
        code: QR token to encode
        box_size: Pixels per module
        border: Quiet zone width in modules

    Returns:
        PNG image bytes

    Raises:
        ValueError: If the code is empty
    """
    if not code:
        raise ValueError("Cannot render an empty QR code")

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(code)
    qr.make(fit=True)

    image = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")

    logger.debug("voucher_qr_rendered", qr_code=code, version=qr.version, size_bytes=buffer.tell())

    return buffer.getvalue()
