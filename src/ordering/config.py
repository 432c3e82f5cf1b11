"""Runtime settings for checkout and order handling, read from the environment.

Protean's own configuration (providers, brokers, processing mode) lives in
``domain.toml`` next to the domain module; the values here are the knobs the
ordering code itself consults.
"""

import os
from dataclasses import dataclass, field, replace

DEFAULT_PREPAID_METHODS = ("BANK_TRANSFER", "PAYPAL")


def _split_csv(raw: str) -> frozenset[str]:
    return frozenset(part.strip().upper() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class OrderingSettings:
    transaction_timeout_seconds: float = 10.0
    guest_tracking_ttl_days: int = 7
    prepaid_methods: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_PREPAID_METHODS))
    frontend_url: str = "http://localhost:3000"
    notifier: str = "fake"

    @classmethod
    def from_env(cls) -> "OrderingSettings":
        return cls(
            transaction_timeout_seconds=float(os.getenv("ORDERING_TRANSACTION_TIMEOUT_SECONDS", "10")),
            guest_tracking_ttl_days=int(os.getenv("ORDERING_GUEST_TRACKING_TTL_DAYS", "7")),
            prepaid_methods=_split_csv(os.getenv("ORDERING_PREPAID_METHODS", ",".join(DEFAULT_PREPAID_METHODS))),
            frontend_url=os.getenv("ORDERING_FRONTEND_URL", "http://localhost:3000").rstrip("/"),
            notifier=os.getenv("ORDERING_NOTIFIER", "fake").lower(),
        )


_current_settings: OrderingSettings | None = None


def get_settings() -> OrderingSettings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = OrderingSettings.from_env()
    return _current_settings


def override_settings(**changes) -> OrderingSettings:
    """Replace individual settings (useful for tests)."""
    global _current_settings
    _current_settings = replace(get_settings(), **changes)
    return _current_settings


def reset_settings() -> None:
    """Drop cached settings so the next access re-reads the environment."""
    global _current_settings
    _current_settings = None
