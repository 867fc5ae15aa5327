from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from zoneinfo import ZoneInfo

from backoffice.core.config import settings

CENT = Decimal("0.01")


def local_today() -> date:
    """Business date in the configured timezone"""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
