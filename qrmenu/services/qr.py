"""
Table QR Codes

Each dine-in table gets a QR code that opens the customer menu for that
table. Codes are rendered as SVG so they print crisply at any size.
"""

import io
import logging
import re
from urllib.parse import quote

import qrcode
from qrcode.image.svg import SvgPathImage

from qrmenu.core.config import get_settings

logger = logging.getLogger(__name__)


def qr_payload_url(table_number: str, origin: str = None) -> str:
    """URL encoded into a table's QR code: ``<origin>/menu/<table>``."""
    base = (origin or get_settings().public_origin).rstrip("/")
    return f"{base}/menu/{quote(str(table_number), safe='')}"


def qr_filename(table_number: str) -> str:
    dashed = re.sub(r"\s", "-", str(table_number))
    return f"meja_{dashed}_qrcode.svg"


def render_qr_svg(table_number: str, origin: str = None) -> bytes:
    """Render the table's QR code as an SVG document."""
    data = qr_payload_url(table_number, origin)

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=4,
        image_factory=SvgPathImage,
    )
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image()

    buffer = io.BytesIO()
    image.save(buffer)
    logger.debug(f"QR generated for table {table_number}: {data}")
    return buffer.getvalue()
