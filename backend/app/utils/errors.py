from typing import Dict
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    field_errors: Dict[str, str],
    code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    return HTTPException(status_code=code, detail=detail)


class LifecycleError(Exception):
    """Base class for caller-visible booking/contract/signature failures.

    ``code`` is the stable machine-readable kind; ``field`` names the input the
    presentation layer should highlight.
    """

    code = "lifecycle_error"
    status_code = status.HTTP_400_BAD_REQUEST
    field = "detail"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if field is not None:
            self.field = field

    @property
    def field_errors(self) -> Dict[str, str]:
        return {self.field: self.code}


class InvalidTransition(LifecycleError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT
    field = "status"


class DuplicatePending(LifecycleError):
    code = "duplicate_pending"
    status_code = status.HTTP_409_CONFLICT
    field = "talent_id"


class AlreadyResponded(LifecycleError):
    code = "already_responded"
    status_code = status.HTTP_409_CONFLICT
    field = "request_status"


class PreconditionFailed(LifecycleError):
    code = "precondition_failed"
    status_code = status.HTTP_412_PRECONDITION_FAILED


class NotSigner(LifecycleError):
    code = "not_signer"
    status_code = status.HTTP_403_FORBIDDEN
    field = "signer_id"


class ContractNotSignable(LifecycleError):
    code = "contract_not_signable"
    status_code = status.HTTP_409_CONFLICT
    field = "contract_status"


class NotFound(LifecycleError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    field = "id"


class Forbidden(LifecycleError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    field = "actor"


class ValidationFailed(LifecycleError):
    code = "validation_failed"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class Conflict(LifecycleError):
    """Storage contention outlasted the internal retries; safe for the caller to retry."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
