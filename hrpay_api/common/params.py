# hrpay_api/common/params.py
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from hrpay_api.common.errors import ValidationError


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def utc_today() -> date:
    return utcnow().date()

def parse_date(s, field="date") -> date | None:
    if s is None or s == "":
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(str(s)[:10], fmt).date()
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")

def parse_datetime(s, field="timestamp") -> datetime | None:
    """ISO-8601 → naive UTC."""
    if s is None or s == "":
        return None
    if isinstance(s, datetime):
        dt = s
    else:
        try:
            dt = datetime.fromisoformat(str(s).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 timestamp")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt

def to_decimal(x, field="value", minimum=None) -> Decimal | None:
    if x is None or x == "":
        return None
    if isinstance(x, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        d = Decimal(str(x))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not d.is_finite():
        raise ValidationError(f"{field} must be a number")
    if minimum is not None and d < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return d

def to_int(x, field="value") -> int | None:
    if x is None or x == "":
        return None
    if isinstance(x, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(x)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")

def to_bool(x):
    if isinstance(x, bool):
        return x
    if x is None:
        return None
    return str(x).lower() in ("1", "true", "yes", "y")

def require_fields(d: dict, *names):
    missing = [k for k in names if d.get(k) in (None, "")]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing),
                              payload={"missing": missing})

def month_year(month, year) -> tuple[int, int]:
    m = to_int(month, "month")
    y = to_int(year, "year")
    if m is None or y is None:
        raise ValidationError("month and year are required")
    if not 1 <= m <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not 1000 <= y <= 9999:
        raise ValidationError("year must be a four-digit year")
    return m, y

def num(v):
    try:
        return float(v) if v is not None else None
    except Exception:
        return None

def iso(v):
    return v.isoformat() if v is not None else None
