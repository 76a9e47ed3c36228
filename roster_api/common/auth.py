# roster_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Iterable, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from roster_api.common.http import fail


# ---------- helpers ----------

def _roles_from_claims(claims: dict) -> Set[str]:
    raw = claims.get("roles") or []
    if isinstance(raw, str):
        raw = [r.strip() for r in raw.split(",")]
    return {str(r).strip().lower() for r in raw if str(r).strip()}


def _has_any_role(user_roles: Set[str], required: Iterable[str]) -> bool:
    required = [r.lower() for r in required]
    if not required:
        return True
    return any(r in user_roles for r in required)


# ---------- decorators ----------

def requires_roles(*codes: str):
    """
    Require that the current user has AT LEAST ONE of the given role codes.
    - Roles are read from the 'roles' claim of the access token
      (tokens are issued by the auth service, not here).
    - 'admin' role always passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            uid = get_jwt_identity()
            if uid is None:
                return fail("Unauthorized", status=401)

            roles = _roles_from_claims(get_jwt() or {})
            if "admin" in roles:
                return fn(*args, **kwargs)

            if not _has_any_role(roles, codes):
                return fail("Forbidden", status=403)

            return fn(*args, **kwargs)
        return inner
    return outer
