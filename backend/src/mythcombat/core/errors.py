from __future__ import annotations

from typing import Any


class CombatError(Exception):
    """Base for every error the combat core surfaces to callers."""

    code = "combat_error"
    status_code = 400

    def __init__(self, message: str, *, code: str | None = None, **meta: Any):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.meta = meta

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.meta:
            out["meta"] = self.meta
        return out


class ValidationError(CombatError):
    code = "validation_error"
    status_code = 422


class NotFoundError(CombatError):
    code = "not_found"
    status_code = 404


class ConflictError(CombatError):
    code = "conflict"
    status_code = 409


class UpstreamPersistenceError(CombatError):
    code = "upstream_persistence"
    status_code = 503


class CharacterMissingError(NotFoundError):
    code = "character_missing"


class CombatNotEndedError(ConflictError):
    code = "combat_not_ended"


class EmptyPoolError(ValidationError):
    code = "empty_pool"
