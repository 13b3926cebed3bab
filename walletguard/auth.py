"""
Identity collaborator. The caller's user id, role and step-up status
arrive as request headers set by the upstream gateway.
"""

from dataclasses import dataclass

from flask import request

from walletguard.errors import AuthenticationError, AuthorizationError

ROLES = ("user", "admin")


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: str = "user"
    step_up_verified: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def current_identity() -> Identity:
    user_id = (request.headers.get("X-User-Id") or "").strip()
    if not user_id:
        raise AuthenticationError("Missing X-User-Id header")
    role = (request.headers.get("X-User-Role") or "user").strip().lower()
    if role not in ROLES:
        raise AuthenticationError(f"Unknown role: {role}")
    # Set by the 2FA gateway once the caller passed a second factor.
    step_up = (request.headers.get("X-Step-Up-Verified") or "").strip().lower() == "true"
    return Identity(user_id=user_id, role=role, step_up_verified=step_up)


def require_admin() -> Identity:
    identity = current_identity()
    if not identity.is_admin:
        raise AuthorizationError("Admin access required")
    return identity


def require_self_or_admin(user_id: str) -> Identity:
    identity = current_identity()
    if not identity.is_admin and identity.user_id != user_id:
        raise AuthorizationError("Access denied")
    return identity
