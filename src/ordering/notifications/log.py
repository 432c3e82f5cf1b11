"""Notifier that writes notices to the structured log.

Stands in for real delivery where no mail or push transport is configured.
"""

import structlog

from ordering.notifications.port import OrderNotice, OrderNotifier

logger = structlog.get_logger(__name__)


class LogNotifier(OrderNotifier):
    def send(self, notice: OrderNotice) -> None:
        logger.info(
            "order_notice",
            kind=notice.kind.value,
            audience=notice.audience.value,
            order_id=notice.order_id,
            status=notice.status,
            recipient=notice.recipient,
            subject=notice.subject,
        )
