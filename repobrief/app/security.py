from __future__ import annotations

"""API-key callers and the roles that gate asking, saving and browsing."""

from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from repobrief.app.settings import settings

READ_ROLES = frozenset({"reader", "writer", "admin"})
WRITE_ROLES = frozenset({"writer", "admin"})


@dataclass(frozen=True)
class Caller:
    """Who is calling: the project member the key belongs to and their role.

    Admins see every project; everyone else is limited to projects that list
    ``user_id`` as a member.
    """
    user_id: str
    role: str
    api_key: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def identify_caller(request: Request) -> Caller:
    """Resolve the request's API key into a project member.

    ``REPOBRIEF_API_KEY_MAP`` binds keys to a user and role. Plain
    ``REPOBRIEF_API_KEYS`` act as admin keys for the default user. With no
    keys configured, callers are anonymous admins only when
    ``REPOBRIEF_ALLOW_ANONYMOUS`` is set.
    """
    members = settings.api_key_map
    admin_keys = settings.api_keys
    if not (members or admin_keys):
        if not settings.allow_anonymous:
            raise _unauthorized("API key required")
        return Caller(user_id=settings.default_user_id, role="admin")

    api_key = _presented_key(request)
    if api_key and api_key in members:
        member = members[api_key]
        return Caller(
            user_id=member.get("user_id", settings.default_user_id),
            role=member.get("role", "reader").lower(),
            api_key=api_key,
        )
    if api_key and api_key in admin_keys:
        return Caller(user_id=settings.default_user_id, role="admin", api_key=api_key)
    raise _unauthorized("Invalid or missing API key")


def require_role(caller: Caller, allowed: frozenset[str]) -> None:
    if caller.role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role '{caller.role}' may not perform this action",
        )


def _presented_key(request: Request) -> str | None:
    """Read the key from ``X-API-Key`` or a bearer ``Authorization`` header."""
    key = request.headers.get("x-api-key", "").strip()
    if key:
        return key
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None
