from .crud_user import user
from .crud_booking import booking
from . import crud_booking_talent
from . import crud_contract
from . import crud_signature
from . import crud_notification

# Lifecycle services use the module-level helpers directly, e.g.
# `crud.crud_contract.compare_and_set_status(...)`.
