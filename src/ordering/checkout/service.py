"""Entry points that run write commands through the transaction gate.

Every write command (checkout, status changes, restock, cart edits) is
processed synchronously while holding the gate, inside the unit of work
Protean opens for its handler. Notices returned by a handler are sent only
after that unit of work has committed; a failing notifier is logged and
never turns a committed command into an error.
"""

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from ordering.checkout.transaction import CommandOutcome, TransactionGate
from ordering.config import get_settings
from ordering.errors import TransactionAborted, TransactionConflict
from ordering.notifications import get_notifier
from ordering.utils.logging import command_context

logger = structlog.get_logger(__name__)

_gate: TransactionGate | None = None


def get_gate() -> TransactionGate:
    global _gate
    if _gate is None:
        _gate = TransactionGate(get_settings().transaction_timeout_seconds)
    return _gate


def reset_gate() -> None:
    global _gate
    _gate = None


def dispatch_notices(notices) -> int:
    """Send notices best-effort; returns how many were delivered."""
    notifier = get_notifier()
    delivered = 0
    for notice in notices:
        try:
            notifier.send(notice)
            delivered += 1
        except Exception as exc:
            logger.error(
                "order_notice_failed",
                kind=notice.kind.value,
                order_id=notice.order_id,
                error=str(exc),
            )
    return delivered


def execute(command):
    """Process ``command`` under the gate and dispatch its notices after commit."""
    operation = type(command).__name__
    try:
        with command_context(command), get_gate().hold(operation):
            result = current_domain.process(command, asynchronous=False)
    except ExpectedVersionError as exc:
        logger.warning("transaction_conflict", operation=operation, error=str(exc))
        raise TransactionConflict(operation, str(exc)) from exc
    except TransactionAborted:
        raise
    except Exception as exc:
        logger.info("command_rejected", operation=operation, error_type=type(exc).__name__, error=str(exc))
        raise

    if isinstance(result, CommandOutcome):
        dispatch_notices(result.notices)
        return result.order_id
    return result
