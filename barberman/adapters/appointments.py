"""
Django ORM adapter for AppointmentHistoryBackend.

Matches appointments to a client the way the checkout screen records
them: by the client link, or, for appointments not linked to any client,
by phone or by name (case-insensitive).
"""

from __future__ import annotations

from django.db.models import Q

from barberman.rules import QualifyingEvent


class DjangoAppointmentHistoryBackend:
    """Reads completed appointments from barberman.Appointment."""

    def list_completed_appointments(self, client) -> list[QualifyingEvent]:
        from barberman.models import Appointment, AppointmentStatus

        # Unlinked appointments are attributed by phone or name.
        unlinked = Q()
        if client.phone:
            unlinked |= Q(client_phone=client.phone)
        if client.name.strip():
            unlinked |= Q(client_name__iexact=client.name.strip())

        match = Q(client=client)
        if unlinked:
            match |= Q(client__isnull=True) & unlinked

        appointments = (
            Appointment.objects.filter(
                unit_id=client.unit_id,
                status=AppointmentStatus.COMPLETED,
            )
            .filter(match)
            .order_by("start_time", "pk")
        )
        return [appointment.as_qualifying_event() for appointment in appointments]
