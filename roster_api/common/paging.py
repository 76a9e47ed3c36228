# roster_api/common/paging.py
from datetime import date, datetime

from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 50
MAX_SIZE = 500

def page_limit():
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except Exception:
        page = DEFAULT_PAGE
    raw = request.args.get("size", request.args.get("limit", DEFAULT_SIZE))
    try:
        size = int(raw)
        size = max(1, min(size, MAX_SIZE))
    except Exception:
        size = DEFAULT_SIZE
    return page, size

def text_q():
    q = request.args.get("q", "")
    return q.strip() or None

def parse_date_any(s: str | None) -> date | None:
    """
    Accepts:
      - 'YYYY-MM-DD'  (canonical)
      - 'DD-MM-YYYY'  (legacy support)
    """
    if not s:
        return None
    for f in ("%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(s, f).date()
        except (TypeError, ValueError):
            pass
    return None

def parse_dt(s) -> datetime | None:
    """ISO-8601 datetime; a trailing 'Z' is accepted and dropped (wall-clock only)."""
    if not s:
        return None
    if isinstance(s, datetime):
        return s
    raw = str(s).strip().replace(" ", "T")
    if raw.endswith("Z"):
        raw = raw[:-1]
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return dt.replace(tzinfo=None)

def as_int_list(val, field) -> list[int]:
    if val in (None, "", "null"):
        return []
    if not isinstance(val, (list, tuple)):
        raise ValueError(f"{field} must be a list of integers")
    out = []
    for v in val:
        try:
            out.append(int(v))
        except (TypeError, ValueError):
            raise ValueError(f"{field} must be a list of integers")
    return out

def as_bool(val, field) -> bool:
    """JSON booleans, 0/1, or 'true|false|1|0|yes|no' (same words as ?is_active=)."""
    if isinstance(val, bool):
        return val
    if val is None:
        return False
    if isinstance(val, int) and val in (0, 1):
        return bool(val)
    if isinstance(val, str):
        v = val.strip().lower()
        if v in ("true", "1", "yes"):
            return True
        if v in ("false", "0", "no", ""):
            return False
    raise ValueError(f"{field} must be a boolean")
