from __future__ import annotations
from typing import List, Set
from flask_jwt_extended import get_jwt, get_jwt_identity


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def missing_permissions(*codes: str) -> List[str]:
    """Codes from ``codes`` the caller's token does not carry, in the order asked."""
    perms = current_permissions()
    if '*' in perms:
        return []
    return [c for c in codes if c not in perms]


def current_actor() -> str:
    """Identity of the caller (staff id) taken from the verified token."""
    return str(get_jwt_identity())
