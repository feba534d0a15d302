"""
Gate pass codes and expiry
"""
import calendar
import re
import secrets
import string
from datetime import date, datetime, timedelta
from typing import Optional

from app.core.constants import PASS_SUFFIX_LENGTH
from app.models.gate_pass import PassValidity
from app.utils.datetime_utils import end_of_local_day, ensure_utc, now_utc, to_local

_ALPHABET = string.digits + string.ascii_uppercase
_SEPARATORS = re.compile(r"[\s\-]+")


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits)) or "0"


def _random_segment(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_code(now: Optional[datetime] = None) -> str:
    """
    New pass code in the form ``XXXX-XXXX-XX``.

    Random segment, the low four base-36 digits of the millisecond timestamp,
    then a second random segment. Uniqueness is probabilistic; the unique
    constraint on ``pass_code`` is what enforces it.
    """
    now = ensure_utc(now or now_utc())
    stamp = _to_base36(int(now.timestamp() * 1000))[-4:].rjust(4, "0")
    return f"{_random_segment(4)}-{stamp}-{_random_segment(2)}"


def normalize_code(raw: Optional[str]) -> str:
    """Uppercase with dashes and whitespace removed."""
    return _SEPARATORS.sub("", raw or "").upper()


def code_suffix(normalized: str) -> str:
    return normalized[-PASS_SUFFIX_LENGTH:]


def _add_month(day: date) -> date:
    year, month = (day.year + 1, 1) if day.month == 12 else (day.year, day.month + 1)
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def compute_expiry(validity: PassValidity, now: Optional[datetime] = None) -> datetime:
    """
    Expiry instant (UTC) for a pass issued at ``now``.

    single: 24 hours after issue. day/week/month: end of the local day of
    issue, seven days later, or one calendar month later (clamped to the
    month's last day).
    """
    now = ensure_utc(now or now_utc())
    validity = PassValidity(validity)
    if validity == PassValidity.SINGLE:
        return now + timedelta(hours=24)

    today = to_local(now).date()
    if validity == PassValidity.DAY:
        return end_of_local_day(today)
    if validity == PassValidity.WEEK:
        return end_of_local_day(today + timedelta(days=7))
    return end_of_local_day(_add_month(today))
