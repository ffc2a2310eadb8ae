"""
Barberman configuration.

Usage in settings.py:
    BARBERMAN = {
        "DEFAULT_CUTS_THRESHOLD": 10,
        "DEFAULT_MIN_VALUE": "30.00",
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class BarbermanSettings:
    """Barberman configuration settings."""

    # Defaults for newly created units
    DEFAULT_CUTS_THRESHOLD: int = 10
    DEFAULT_MIN_VALUE: str = "30.00"

    # Payment labels that mean "paid with a fidelity courtesy"
    COURTESY_PAYMENT_MARKERS: tuple[str, ...] = (
        "Cortesia de Fidelidade",
        "fidelity_courtesy",
    )

    # Manual courtesy notes
    COURTESY_NOTE_PREFIX: str = "[Cortesia]"
    COURTESY_REASON_MAX_LENGTH: int = 200

    # Phone normalization (prefix added to national numbers)
    DEFAULT_COUNTRY_CODE: str = "55"

    # Appointment history backend (for reconciliation)
    APPOINTMENT_HISTORY_BACKEND: str = (
        "barberman.adapters.appointments.DjangoAppointmentHistoryBackend"
    )


def get_barberman_settings() -> BarbermanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "BARBERMAN", {})
    return BarbermanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_barberman_settings(), name)


barberman_settings = _LazySettings()
