"""Pytest fixtures for Barberman tests."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from barberman.models import Appointment, AppointmentStatus, Client, Unit


@pytest.fixture
def unit(db):
    """Unit with the fidelity program on: 5 cuts, minimum R$ 30."""
    return Unit.objects.create(
        code="centro",
        name="Unidade Centro",
        fidelity_program_enabled=True,
        fidelity_cuts_threshold=5,
        fidelity_min_value=Decimal("30.00"),
    )


@pytest.fixture
def unit_disabled(db):
    """Unit with the fidelity program off."""
    return Unit.objects.create(
        code="bairro",
        name="Unidade Bairro",
        fidelity_program_enabled=False,
        fidelity_cuts_threshold=5,
        fidelity_min_value=Decimal("30.00"),
    )


@pytest.fixture
def client_joao(unit):
    """Client with zeroed fidelity counters."""
    return Client.objects.create(
        unit=unit,
        code="CLI-001",
        name="João Silva",
        phone="(41) 99999-0001",
        email="Joao@Example.com",
    )


@pytest.fixture
def client_pedro(unit):
    return Client.objects.create(
        unit=unit,
        code="CLI-002",
        name="Pedro Souza",
        phone="41999990002",
    )


@pytest.fixture
def make_appointment(unit):
    """Factory for appointments; scheduled one hour apart by default."""
    counter = {"n": 0}
    base = timezone.now() - timedelta(days=30)

    def _make(
        client=None,
        price=Decimal("40.00"),
        status=AppointmentStatus.SCHEDULED,
        payment_method="",
        start_time=None,
        **kwargs,
    ):
        counter["n"] += 1
        kwargs.setdefault("unit", unit)
        return Appointment.objects.create(
            client=client,
            service_name=kwargs.pop("service_name", "Corte"),
            service_price=kwargs.pop("service_price", price),
            total_price=price,
            status=status,
            payment_method=payment_method,
            start_time=start_time or base + timedelta(hours=counter["n"]),
            **kwargs,
        )

    return _make


@pytest.fixture
def complete_visit(make_appointment):
    """Factory for already-completed appointments (history for reconciliation)."""

    def _make(client=None, price=Decimal("40.00"), payment_method="cash", **kwargs):
        appointment = make_appointment(
            client=client,
            price=price,
            status=AppointmentStatus.COMPLETED,
            payment_method=payment_method,
            **kwargs,
        )
        appointment.completed_at = appointment.start_time
        appointment.save(update_fields=["completed_at"])
        return appointment

    return _make
