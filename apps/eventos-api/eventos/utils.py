import os
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Argentina/Buenos_Aires"


def get_app_timezone():
    tz_name = (
        os.getenv("APP_TIMEZONE")
        or os.getenv("TIMEZONE")
        or os.getenv("TZ")
        or DEFAULT_TIMEZONE
    )
    try:
        return ZoneInfo(tz_name)
    except Exception:
        logger.warning(f"Unknown timezone {tz_name}, falling back to UTC-3")
    return timezone(timedelta(hours=-3))


def now_local() -> datetime:
    return datetime.now(timezone.utc).astimezone(get_app_timezone())


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken as local wall time."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        s = str(value).strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=get_app_timezone())
    return dt


def to_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Decimal from user input; NaN and Infinity count as invalid."""
    if value is None or value == "":
        return default
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    return d if d.is_finite() else default


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


async def read_json(request) -> Dict[str, Any]:
    """Request body as a dict; malformed or non-object bodies read as empty."""
    try:
        data = await request.json()
    except Exception:
        data = {}
    return data if isinstance(data, dict) else {}
