"""Result shapes shared by the data-access services.

Read paths that must degrade softly return :class:`ServiceResult`; mutations
return small outcome dataclasses. Neither raises for expected failures.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import IntegrityError

T = TypeVar("T")

UNIQUE_VIOLATION = "23505"
_UNIQUE_MESSAGE = re.compile(r"duplicate key|unique", re.IGNORECASE)


@dataclass(frozen=True)
class DataServiceError:
    """Error payload carried by failed service results."""

    code: str
    message: str
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Result-with-error shape returned instead of raising."""

    success: bool
    data: T | None = None
    error: DataServiceError | None = None

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        return cls(success=False, error=DataServiceError(code, message, details))


@dataclass(frozen=True)
class MutationOutcome:
    """Outcome of an insert/delete style mutation."""

    ok: bool
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


def is_unique_violation(exc: BaseException) -> bool:
    """Return True when ``exc`` signals a duplicate-key insert.

    Postgres drivers expose SQLSTATE ``23505``; SQLite only reports
    ``UNIQUE constraint failed`` in the message.
    """
    orig = exc.orig if isinstance(exc, IntegrityError) else exc
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == UNIQUE_VIOLATION:
        return True
    return bool(_UNIQUE_MESSAGE.search(str(orig)))
