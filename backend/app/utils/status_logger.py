import logging
from sqlalchemy import event
from sqlalchemy.orm.attributes import NO_VALUE

from .. import models

logger = logging.getLogger(__name__)

_registered = False


def _listener_factory(model_name: str, attr: str):
    """Return a SQLAlchemy attribute listener that logs status changes."""

    def _status_change(target, value, oldvalue, initiator):  # noqa: ANN001
        if oldvalue is NO_VALUE or oldvalue is None or oldvalue == value:
            return value
        entity_id = getattr(target, "id", "unknown")
        logger.info(
            "%s id=%s %s changed from %s to %s",
            model_name,
            entity_id,
            attr,
            getattr(oldvalue, "value", oldvalue),
            getattr(value, "value", value),
        )
        return value

    return _status_change


def register_status_listeners() -> None:
    """Attach listeners for every lifecycle model's status column.

    Conditional (compare-and-swap) updates bypass the ORM attribute events and
    log their own transitions in the crud layer.
    """
    global _registered
    if _registered:
        return
    for model, attr in (
        (models.Booking, "status"),
        (models.BookingTalent, "request_status"),
        (models.Contract, "status"),
        (models.Signature, "status"),
    ):
        event.listen(
            getattr(model, attr),
            "set",
            _listener_factory(model.__name__, attr),
            retval=False,
            propagate=True,
        )
    _registered = True
