# roster_api/common/listing.py
from flask import request
from sqlalchemy import or_

def apply_q_search(query, *cols):
    q = (request.args.get("q") or request.args.get("search") or "").strip().lower()
    if not q: return query
    like = f"%{q}%"
    return query.filter(or_(*[c.ilike(like) for c in cols]))

def apply_active_filter(query, col):
    """?is_active=true|false ; anything else is ignored."""
    v = (request.args.get("is_active") or "").strip().lower()
    if v in ("true", "1", "yes"):
        return query.filter(col.is_(True))
    if v in ("false", "0", "no"):
        return query.filter(col.is_(False))
    return query
