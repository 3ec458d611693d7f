import string
import time
from typing import Optional

from bakerypos.core.config import settings

BASE36_DIGITS = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_transaction_number(now_ns: Optional[int] = None, prefix: Optional[str] = None) -> str:
    """
    Human readable transaction number, e.g. ``TRX-LZ3K9Q2M1A``.

    Built from the current time in microseconds; uniqueness is enforced by the
    ``uq_transaction_number`` constraint, not by this function.
    """
    micros = (now_ns if now_ns is not None else time.time_ns()) // 1000
    return f"{prefix or settings.TRANSACTION_NUMBER_PREFIX}-{to_base36(micros)}"
