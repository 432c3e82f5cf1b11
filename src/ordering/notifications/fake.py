"""In-memory notifier for development and tests.

Records every notice it receives and can be switched into a failing mode to
exercise the best-effort dispatch path.
"""

from ordering.notifications.port import NotificationFailed, OrderNotice, OrderNotifier


class FakeNotifier(OrderNotifier):
    def __init__(self) -> None:
        self.should_fail: bool = False
        self.failure_reason: str = "Mail server unavailable"
        self.sent: list[OrderNotice] = []

    def configure(self, should_fail: bool, failure_reason: str = "Mail server unavailable") -> None:
        self.should_fail = should_fail
        self.failure_reason = failure_reason

    def send(self, notice: OrderNotice) -> None:
        if self.should_fail:
            raise NotificationFailed(self.failure_reason)
        self.sent.append(notice)

    def of_kind(self, kind) -> list[OrderNotice]:
        return [notice for notice in self.sent if notice.kind == kind]
