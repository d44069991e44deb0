"""PromptPay payment QR codes.

Builds the EMVCo merchant-presented QR payload understood by Thai banking
apps and renders it with ``qrcode``. A payload is a sequence of
``<tag:2><length:2><value>`` fields closed by a CRC16 checksum field.
"""

import base64
import io
import logging
import re
from decimal import Decimal, InvalidOperation

import qrcode
import qrcode.image.svg

from siampos.core.errors import ValidationError

logger = logging.getLogger(__name__)

PROMPTPAY_AID = "A000000677010111"
THB_CURRENCY_CODE = "764"
COUNTRY_CODE = "TH"

ID_MOBILE = "01"
ID_TAX = "02"
ID_EWALLET = "03"

# Point of initiation method 12: dynamic QR carrying one amount
DYNAMIC_QR = "12"

QR_FORMATS = ("png", "svg")


def crc16(data: str) -> str:
    """CRC16-CCITT (poly 0x1021, init 0xFFFF) as 4 upper-case hex digits."""
    crc = 0xFFFF
    for byte in data.encode("utf-8"):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return f"{crc:04X}"


def _field(tag: str, value: str) -> str:
    return f"{tag}{len(value):02d}{value}"


def _merchant_account(promptpay_id: str) -> str:
    digits = re.sub(r"\D", "", promptpay_id or "")
    if len(digits) == 10 and digits.startswith("0"):
        sub_tag, value = ID_MOBILE, "0066" + digits[1:]
    elif len(digits) == 11 and digits.startswith("66"):
        sub_tag, value = ID_MOBILE, "00" + digits
    elif len(digits) == 13:
        sub_tag, value = ID_TAX, digits
    elif len(digits) == 15:
        sub_tag, value = ID_EWALLET, digits
    else:
        raise ValidationError(
            "Invalid PromptPay ID: expected a mobile number, 13-digit tax ID or 15-digit e-wallet ID",
            code="INVALID_PROMPTPAY_ID",
        )
    return _field("00", PROMPTPAY_AID) + _field(sub_tag, value)


def _format_amount(amount) -> str:
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError("Invalid amount", code="INVALID_AMOUNT")
    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be positive", code="INVALID_AMOUNT")
    return f"{value:.2f}"


def build_promptpay_payload(promptpay_id: str, amount) -> str:
    """Build a dynamic PromptPay payload charging ``amount`` baht to ``promptpay_id``."""
    body = "".join(
        [
            _field("00", "01"),
            _field("01", DYNAMIC_QR),
            _field("29", _merchant_account(promptpay_id)),
            _field("53", THB_CURRENCY_CODE),
            _field("54", _format_amount(amount)),
            _field("58", COUNTRY_CODE),
        ]
    )
    # The checksum covers its own tag and length
    body += "6304"
    return body + crc16(body)


def render_qr(payload: str, fmt: str = "png") -> str:
    """Render ``payload`` as base64 PNG or SVG markup."""
    if fmt not in QR_FORMATS:
        raise ValidationError(f"Unsupported QR format: {fmt}", code="INVALID_FORMAT")

    qr = qrcode.QRCode(version=None, box_size=10, border=4)
    qr.add_data(payload)
    qr.make(fit=True)

    buffer = io.BytesIO()
    if fmt == "svg":
        img = qr.make_image(image_factory=qrcode.image.svg.SvgPathImage)
        img.save(buffer)
        return buffer.getvalue().decode("utf-8")

    img = qr.make_image(fill_color="black", back_color="white")
    img.save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("utf-8")
