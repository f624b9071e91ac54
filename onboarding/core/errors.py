from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


# -----------------------------
# Raised errors
# -----------------------------


class OnboardingError(Exception):
    """
    Base for everything the core raises.
    Carries a stable UPPER_SNAKE code plus an explain payload (meta).
    """

    code: str = "ONBOARDING_ERROR"

    def __init__(self, message: str, meta: Optional[Dict[str, Any]] = None):
        self.message = str(message)
        self.meta = meta or {}
        super().__init__(f"{self.code}: {self.message}")


class StructuralError(OnboardingError):
    """Grid/section geometry or identity would break. Never partially applied."""

    code = "STRUCTURAL_ERROR"


class NotFoundError(OnboardingError):
    """Unknown id referenced by an update. Caller and state are out of sync."""

    code = "NOT_FOUND"


class PersistError(OnboardingError):
    code = "PERSIST_ERROR"


class RenderError(OnboardingError):
    code = "RENDER_ERROR"


# -----------------------------
# Returned issues (not raised)
# -----------------------------

INVALID_QUANTITY = "INVALID_QUANTITY"
INVALID_PRICE = "INVALID_PRICE"
INVALID_ADDON_NESTING = "INVALID_ADDON_NESTING"
MISSING_LOCATION = "MISSING_LOCATION"
UNKNOWN_LOCATION = "UNKNOWN_LOCATION"
EMPTY_QUOTE = "EMPTY_QUOTE"
MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
SECTIONS_NOT_EMPTY = "SECTIONS_NOT_EMPTY"
NO_SOLUTION_SELECTED = "NO_SOLUTION_SELECTED"
NO_MODULE_SELECTED = "NO_MODULE_SELECTED"
NO_SYSTEM_SELECTED = "NO_SYSTEM_SELECTED"
NOT_SELECTABLE = "NOT_SELECTABLE"
INVALID_TRANSITION = "INVALID_TRANSITION"


@dataclass(frozen=True)
class ValidationIssue:
    """
    User-facing validation problem, returned as a value so the editor can
    show it inline. Same shape as the block/warning dicts: code + message + meta.
    """

    code: str
    message: str
    meta: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "meta": dict(self.meta)}
