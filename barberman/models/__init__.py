"""Barberman models."""

from barberman.models.unit import Unit
from barberman.models.client import Client
from barberman.models.appointment import Appointment, AppointmentStatus, PaymentMethod
from barberman.models.fidelity_entry import EntryType, FidelityEntry

__all__ = [
    "Unit",
    "Client",
    "Appointment",
    "AppointmentStatus",
    "PaymentMethod",
    # Fidelity audit trail
    "FidelityEntry",
    "EntryType",
]
