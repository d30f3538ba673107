import enum


class BookingStatus(str, enum.Enum):
    """Central booking status enumeration used across the application."""
    INQUIRY = "inquiry"
    PROPOSED = "proposed"
    CONTRACT_SENT = "contract_sent"
    SIGNED = "signed"
    INVOICED = "invoiced"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Forward path a booking walks through, in order.
BOOKING_FLOW: tuple[BookingStatus, ...] = (
    BookingStatus.INQUIRY,
    BookingStatus.PROPOSED,
    BookingStatus.CONTRACT_SENT,
    BookingStatus.SIGNED,
    BookingStatus.INVOICED,
    BookingStatus.PAID,
    BookingStatus.COMPLETED,
)

BOOKING_TERMINAL = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    current: frozenset(
        ({BOOKING_FLOW[i + 1]} if i + 1 < len(BOOKING_FLOW) else set())
        | ({BookingStatus.CANCELLED} if current not in BOOKING_TERMINAL else set())
    )
    for i, current in enumerate(BOOKING_FLOW)
}
BOOKING_TRANSITIONS[BookingStatus.CANCELLED] = frozenset()


def next_booking_status(current: BookingStatus) -> BookingStatus | None:
    """Return the forward successor of ``current`` or None at the end of the flow."""
    if current not in BOOKING_FLOW:
        return None
    idx = BOOKING_FLOW.index(current)
    if idx + 1 >= len(BOOKING_FLOW):
        return None
    return BOOKING_FLOW[idx + 1]


def precedes(current: BookingStatus, target: BookingStatus) -> bool:
    """True when ``current`` sits strictly before ``target`` on the forward flow."""
    if current not in BOOKING_FLOW or target not in BOOKING_FLOW:
        return False
    return BOOKING_FLOW.index(current) < BOOKING_FLOW.index(target)
