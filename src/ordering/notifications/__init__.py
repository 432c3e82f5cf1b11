"""Order notifier factory.

Provides get_notifier() / set_notifier() to swap implementations:
- FakeNotifier for development and testing (the default)
- LogNotifier to emit notices to the structured log
"""

from ordering.config import get_settings
from ordering.notifications.fake import FakeNotifier
from ordering.notifications.log import LogNotifier
from ordering.notifications.port import OrderNotifier

_ADAPTERS = {
    "fake": FakeNotifier,
    "log": LogNotifier,
}

_current_notifier: OrderNotifier | None = None


def get_notifier() -> OrderNotifier:
    """Return the current notifier, built from ORDERING_NOTIFIER on first use."""
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = _ADAPTERS.get(get_settings().notifier, FakeNotifier)()
    return _current_notifier


def set_notifier(notifier: OrderNotifier) -> None:
    """Override the active notifier (useful for tests)."""
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    """Reset to the configured default notifier."""
    global _current_notifier
    _current_notifier = None
