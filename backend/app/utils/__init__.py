from .errors import (
    error_response,
    LifecycleError,
    InvalidTransition,
    DuplicatePending,
    AlreadyResponded,
    PreconditionFailed,
    NotSigner,
    ContractNotSignable,
    NotFound,
    Forbidden,
    ValidationFailed,
    Conflict,
)
from .email import send_email
