"""Human-facing wording for lifecycle notifications.

Each event type maps to a title, a message and the frontend route a
notification bell entry links to.
"""

from __future__ import annotations

from typing import Any

from app.models import NotificationType


def _status_label(value: Any) -> str:
    raw = getattr(value, "value", value) or ""
    return str(raw).replace("_", " ")


def describe(ntype: NotificationType, payload: dict[str, Any]) -> tuple[str, str, str]:
    """Return ``(title, message, link)`` for a lifecycle event."""
    booking_id = payload.get("booking_id")
    booking_title = payload.get("booking_title") or f"booking #{booking_id}"
    talent_name = payload.get("talent_name") or "Talent"

    if ntype == NotificationType.INVITATION_SENT:
        return (
            "New booking request",
            f'You have been invited to "{booking_title}". Please review and respond.',
            "/talent/bookings",
        )
    if ntype == NotificationType.INVITATION_ACCEPTED:
        return (
            f"{talent_name} accepted booking",
            f'{talent_name} has accepted the booking "{booking_title}". A contract can now be created.',
            f"/admin/contracts?booking={booking_id}&talent={payload.get('participation_id')}",
        )
    if ntype == NotificationType.INVITATION_DECLINED:
        reason = payload.get("response_message")
        suffix = f" Reason: {reason}" if reason else ""
        return (
            f"{talent_name} declined booking",
            f'{talent_name} has declined the booking "{booking_title}".{suffix}',
            f"/admin/bookings/{booking_id}",
        )
    if ntype == NotificationType.CONTRACT_SENT:
        due = payload.get("due_date")
        due_text = f" before {due}" if due else ""
        return (
            "Contract ready for signature",
            f'Your contract for "{booking_title}" is ready for signature. Please review and sign{due_text}.',
            f"/contracts/{payload.get('contract_id')}",
        )
    if ntype == NotificationType.CONTRACT_FULLY_SIGNED:
        return (
            "Contract fully signed",
            f'All parties have signed the contract for "{booking_title}". The booking is now confirmed.',
            f"/contracts/{payload.get('contract_id')}",
        )
    if ntype == NotificationType.BOOKING_STATUS_CHANGED:
        if not payload.get("from_status"):
            return (
                "Booking created",
                f'"{booking_title}" was created with code {payload.get("booking_code")}.',
                f"/bookings/{booking_id}",
            )
        return (
            "Booking status updated",
            f'"{booking_title}" moved from {_status_label(payload.get("from_status"))}'
            f" to {_status_label(payload.get('to_status'))}.",
            f"/bookings/{booking_id}",
        )
    return ("Notification", str(payload.get("message", "")), "/")
