"""Barberman protocols for pluggable backends."""

from barberman.protocols.appointments import AppointmentHistoryBackend

__all__ = [
    "AppointmentHistoryBackend",
]
