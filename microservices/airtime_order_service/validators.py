"""
Phone and amount helpers

Pure functions used before any order state is created.
"""

import re
import secrets
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

COUNTRY_CODE = "254"
CANONICAL_PHONE_RE = re.compile(r"^254[0-9]{9}$")
ORDER_NO_PREFIX = "FYS-"
ORDER_NO_DIGITS = 8

_CENTS = Decimal("0.01")


def normalize_phone(value: Any) -> str:
    """
    Canonicalize a Kenyan mobile number to 254XXXXXXXXX.

    Accepts 254XXXXXXXXX, 0XXXXXXXXX and bare XXXXXXXXX, ignoring any
    non-digit characters. Other shapes come back digit-stripped but
    unvalidated; check with is_canonical_phone before trusting them.
    """
    if not value:
        return ""
    digits = re.sub(r"\D", "", str(value))
    if re.fullmatch(r"254[0-9]{9}", digits):
        return digits
    if re.fullmatch(r"0[0-9]{9}", digits):
        return COUNTRY_CODE + digits[1:]
    if re.fullmatch(r"[0-9]{9}", digits):
        return COUNTRY_CODE + digits
    return digits


def is_canonical_phone(value: Optional[str]) -> bool:
    return bool(value) and CANONICAL_PHONE_RE.match(value) is not None


def parse_amount(value: Any) -> Optional[Decimal]:
    """Parse a numeric amount, returning None for anything non-numeric"""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def validate_amount(value: Any, min_amount: Decimal, max_amount: Decimal) -> bool:
    """Amount must be a positive number within [min_amount, max_amount]"""
    amount = parse_amount(value)
    if amount is None or amount <= 0:
        return False
    return Decimal(min_amount) <= amount <= Decimal(max_amount)


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP)


def compute_payable(amount: Decimal, discount_percent: Decimal) -> Decimal:
    """Requested amount minus the percentage discount, rounded to cents"""
    amount = Decimal(amount)
    discount = Decimal(discount_percent or 0)
    if discount == 0:
        return to_money(amount)
    return to_money(amount - amount * discount / Decimal(100))


def clamp_discount(value: Any) -> Decimal:
    """Discount percentage limited to [0, 100]; unparseable values mean no discount"""
    discount = parse_amount(value)
    if discount is None:
        return Decimal("0")
    return max(Decimal("0"), min(Decimal("100"), discount))


def generate_order_no() -> str:
    """FYS- followed by 8 random digits"""
    return f"{ORDER_NO_PREFIX}{secrets.randbelow(10 ** ORDER_NO_DIGITS):0{ORDER_NO_DIGITS}d}"
