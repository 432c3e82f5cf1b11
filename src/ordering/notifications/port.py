"""Order notifier port (abstract interface).

Checkout and the status workflow describe what happened as ``OrderNotice``
payloads; delivering them (email, operator alerts, push) is the adapter's
job. Notices are only handed over after the transaction has committed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class NoticeKind(Enum):
    ORDER_PLACED = "order_placed"
    STATUS_CHANGED = "status_changed"
    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_RESOLVED = "request_resolved"
    ORDER_RESTOCKED = "order_restocked"


class Audience(Enum):
    BUYER = "buyer"
    OPERATOR = "operator"


@dataclass(frozen=True)
class OrderNotice:
    kind: NoticeKind
    audience: Audience
    order_id: str
    status: str
    recipient: str | None = None
    subject: str = ""
    details: dict = field(default_factory=dict)


class NotificationFailed(Exception):
    """The adapter could not deliver a notice."""


class OrderNotifier(ABC):
    @abstractmethod
    def send(self, notice: OrderNotice) -> None:
        """Deliver one notice, raising NotificationFailed when delivery fails."""
        ...
