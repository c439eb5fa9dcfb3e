# clinic_app/core/results.py
import functools
import logging
from typing import Any, List, Optional

from fastapi import HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from clinic_app.core.errors import BookingError, ErrorKind, HTTP_STATUS_BY_KIND
from clinic_app.schemas.notification import NotificationDraft

logger = logging.getLogger(__name__)


class OperationResult(BaseModel):
    """
    Outcome of a service operation.

    * `success`       - whether the operation took effect
    * `error`         - one human-readable message when it did not
    * `error_kind`    - taxonomy entry for `error`
    * `data`          - operation payload (ids, rows, slot lists …)
    * `notifications` - outbox of drafts for the dispatcher; never persisted
                        by the operation itself
    """

    success: bool
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    data: Any = None
    notifications: List[NotificationDraft] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: Any = None, notifications: Optional[List[NotificationDraft]] = None):
        return cls(success=True, data=data, notifications=notifications or [])

    @classmethod
    def fail(cls, kind: ErrorKind, message: str):
        return cls(success=False, error=message, error_kind=kind)


def service_operation(description: str):
    """
    Wrap an async service coroutine taking `db` as its first argument so that
    it always returns an OperationResult.

    BookingError subclasses become failures of their own kind, store errors
    become data_access_error and anything else is logged and reported as an
    unexpected error. The session is rolled back on every failure.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(db, *args, **kwargs) -> OperationResult:
            try:
                return await func(db, *args, **kwargs)
            except BookingError as e:
                await db.rollback()
                logger.warning(f"{description} rejected ({e.kind.value}): {e.message}")
                return OperationResult.fail(e.kind, e.message)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Database error while {description}: {e}", exc_info=True)
                return OperationResult.fail(
                    ErrorKind.DATA_ACCESS_ERROR, f"Database error while {description}"
                )
            except Exception as e:
                await db.rollback()
                logger.error(
                    f"Unexpected error while {description}: {type(e).__name__} - {e}",
                    exc_info=True,
                )
                return OperationResult.fail(
                    ErrorKind.UNEXPECTED,
                    f"An unexpected error occurred while {description}",
                )

        return wrapper

    return decorator


def unwrap_result(result: OperationResult) -> Any:
    """Return the payload of a successful result or raise the matching HTTPException."""
    if not result.success:
        status_code = HTTP_STATUS_BY_KIND.get(result.error_kind, 500)
        raise HTTPException(status_code=status_code, detail=result.error)
    return result.data
