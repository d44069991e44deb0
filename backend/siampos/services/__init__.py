# Services module

from siampos.services.order_service import (
    LineItem,
    OrderTotals,
    allocate_order_number,
    calculate_order_totals,
)
from siampos.services.promptpay import build_promptpay_payload, crc16, render_qr
