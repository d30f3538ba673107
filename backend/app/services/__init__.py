# Importing the service modules registers their domain-event handlers.
from . import booking_lifecycle
from . import contract_service
from . import identity
from . import participation_service
from . import signature_service

__all__ = [
    "booking_lifecycle",
    "contract_service",
    "identity",
    "participation_service",
    "signature_service",
]
