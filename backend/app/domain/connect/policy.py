"""Access predicates for Connect entry points."""

from __future__ import annotations

from app.domain.connect.exceptions import PermissionDeniedError
from app.infra.auth import AuthenticatedUser

ADMIN_ROLES = ("admin", "superadmin")


def is_admin(user: AuthenticatedUser) -> bool:
	return any(user.has_role(role) for role in ADMIN_ROLES)


def is_owner_or_admin(user: AuthenticatedUser, owner_id: str) -> bool:
	return user.id == owner_id or is_admin(user)


def ensure_admin(user: AuthenticatedUser) -> None:
	if not is_admin(user):
		raise PermissionDeniedError("admin_required")


def ensure_owner_or_admin(user: AuthenticatedUser, owner_id: str) -> None:
	if not is_owner_or_admin(user, owner_id):
		raise PermissionDeniedError("owner_or_admin_required")
