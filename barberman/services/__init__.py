"""Barberman services.

Module-level services (plain functions):
- barberman.services.unit: unit lookups and fidelity settings
- barberman.services.client: client lookups and CRUD
- barberman.services.appointment: checkout and courtesy report

Class-based service:
- barberman.services.fidelity: FidelityService
"""

from barberman.services import unit
from barberman.services import client
from barberman.services import appointment
from barberman.services.fidelity import FidelityService

__all__ = ["unit", "client", "appointment", "FidelityService"]
