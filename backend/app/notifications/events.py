from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from app.models import NotificationType


@dataclass(frozen=True)
class LifecycleEvent:
    """A notifier event produced inside a lifecycle transaction.

    Events are buffered by the unit of work and only handed to the notifier
    after the transaction that produced them has committed.
    """

    type: NotificationType
    recipient_ids: tuple[int, ...]
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        type: NotificationType,
        recipient_ids,
        **payload: Any,
    ) -> "LifecycleEvent":
        seen: list[int] = []
        for rid in recipient_ids:
            if rid is None or rid in seen:
                continue
            seen.append(int(rid))
        return cls(type=type, recipient_ids=tuple(seen), payload=payload)
