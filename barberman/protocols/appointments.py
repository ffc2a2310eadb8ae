"""Appointment history protocol for fidelity reconciliation."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from barberman.rules import QualifyingEvent

if TYPE_CHECKING:
    from barberman.models import Client


@runtime_checkable
class AppointmentHistoryBackend(Protocol):
    """
    Protocol for reading a client's completed appointments.

    Used by FidelityService.recalculate to rebuild counters.
    Implemented by adapters/appointments.py.

    Configuration in settings.py:
        BARBERMAN = {
            "APPOINTMENT_HISTORY_BACKEND": "barberman.adapters.appointments.DjangoAppointmentHistoryBackend",
        }
    """

    def list_completed_appointments(self, client: "Client") -> list[QualifyingEvent]:
        """
        Return every completed appointment attributable to the client.

        Args:
            client: Client whose history is requested

        Returns:
            List of QualifyingEvent ordered by visit time (oldest first)
        """
        ...
