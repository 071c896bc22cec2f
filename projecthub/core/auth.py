"""Request identity extraction from trusted gateway headers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from fastapi import Header, HTTPException, status

from projecthub.core.config import get_settings


class AppRole(str, Enum):
    """Closed set of roles issued by the identity provider."""

    ADMIN = "Admin"
    PROJECT_MANAGER = "ProjectManager"
    TEAM_MEMBER = "TeamMember"


ROLE_ALIASES: dict[str, AppRole] = {
    "admin": AppRole.ADMIN,
    "projectmanager": AppRole.PROJECT_MANAGER,
    "project_manager": AppRole.PROJECT_MANAGER,
    "teammember": AppRole.TEAM_MEMBER,
    "team_member": AppRole.TEAM_MEMBER,
}


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from decoded token claims."""

    user_id: str
    role: AppRole


def parse_role(value: str) -> AppRole:
    """Map a role claim onto :class:`AppRole`.

    Raises ``ValueError`` for anything outside the closed set.
    """

    role = ROLE_ALIASES.get(value.strip().lower())
    if role is None:
        raise ValueError(f"Unrecognized role claim: {value!r}")
    return role


def _require_identity_headers(x_user_id: str | None, x_user_role: str | None) -> tuple[str, str]:
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing identity headers. Expected X-User-Id and X-User-Role or enable development principal fallback.",
        )
    return x_user_id.strip(), x_user_role.strip()


def _resolve_identity(x_user_id: str | None, x_user_role: str | None) -> tuple[str, str]:
    settings = get_settings()
    if x_user_id and x_user_role:
        return _require_identity_headers(x_user_id, x_user_role)

    if settings.auth_allow_dev_principal:
        return settings.auth_dev_user_id.strip(), settings.auth_dev_role.strip()

    return _require_identity_headers(x_user_id, x_user_role)


def get_current_user_context(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> RequestUserContext:
    """Resolve current request user from claims forwarded by the API gateway.

    The gateway validates the bearer token and forwards the ``name`` and
    ``role`` claims; this service never sees the token itself.
    """

    user_id, role_claim = _resolve_identity(x_user_id, x_user_role)
    try:
        role = parse_role(role_claim)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    return RequestUserContext(user_id=user_id, role=role)
