"""Appointment service - checkout and courtesy reporting.

Checkout is where the fidelity program meets the cash register:
completing an appointment applies it to the client's card, and paying
with a fidelity courtesy redeems one. Both happen in one transaction.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from barberman import rules
from barberman.conf import barberman_settings
from barberman.exceptions import BarbermanError
from barberman.models import Appointment, AppointmentStatus, Client, PaymentMethod
from barberman.models.appointment import LEGACY_PAYMENT_LABELS
from barberman.services import client as client_service
from barberman.services.fidelity import FidelityService

logger = logging.getLogger(__name__)


@dataclass
class CheckoutPreview:
    """What the payment screen needs to offer a fidelity courtesy."""

    appointment_id: int
    client_code: str | None
    available_courtesies: int
    free_cut: rules.FreeCutCheck


@dataclass
class CheckoutResult:
    """Outcome of completing an appointment."""

    appointment: Appointment
    accrual: rules.AccrualResult | None = None
    courtesy_used: bool = False

    @property
    def courtesy_earned(self) -> bool:
        return bool(self.accrual and self.accrual.courtesy_earned)


@dataclass
class BarberCourtesyStats:
    barber_name: str
    count: int = 0
    original_value: Decimal = Decimal("0")


@dataclass
class CourtesyReportItem:
    appointment: Appointment
    reason: str


@dataclass
class CourtesyReport:
    """Manual courtesies given in a period."""

    total: int = 0
    total_original_value: Decimal = Decimal("0")
    by_barber: list[BarberCourtesyStats] = field(default_factory=list)
    items: list[CourtesyReportItem] = field(default_factory=list)


def get(appointment_id: int) -> Appointment | None:
    """Get appointment by id."""
    try:
        return Appointment.objects.select_related("unit", "client").get(pk=appointment_id)
    except Appointment.DoesNotExist:
        return None


def resolve_client(appointment: Appointment) -> Client | None:
    """
    Active client linked to the appointment, else the unit's client with that phone.

    A deactivated linked client resolves to None: the visit completes
    without touching any fidelity card.
    """
    if appointment.client_id:
        return appointment.client if appointment.client.is_active else None
    if appointment.client_phone:
        return client_service.get_by_phone(appointment.unit.code, appointment.client_phone)
    return None


def checkout_preview(appointment_id: int) -> CheckoutPreview:
    """
    Fidelity information for the payment screen.

    Advisory only, nothing is written.

    Raises:
        BarbermanError: APPOINTMENT_NOT_FOUND
    """
    appointment = get(appointment_id)
    if appointment is None:
        raise BarbermanError("APPOINTMENT_NOT_FOUND", appointment_id=appointment_id)

    client = resolve_client(appointment)
    if client is None:
        return CheckoutPreview(
            appointment_id=appointment.pk,
            client_code=None,
            available_courtesies=0,
            free_cut=rules.FreeCutCheck(is_free_cut=False, loyalty_cuts=0, threshold=0),
        )

    return CheckoutPreview(
        appointment_id=appointment.pk,
        client_code=client.code,
        available_courtesies=client.available_courtesies,
        free_cut=FidelityService.check_if_next_cut_is_free(
            client.code, appointment.total_price
        ),
    )


def complete(
    appointment_id: int,
    payment_method: str,
    courtesy_reason: str = "",
    completed_at: datetime | None = None,
    created_by: str = "",
) -> CheckoutResult:
    """
    Complete an appointment and settle its fidelity effects.

    - courtesy: service given free at staff discretion. A reason is required,
      the charged value drops to zero and the reason is appended to the notes.
    - fidelity_courtesy: redeems one of the client's earned courtesies.

    Any completed appointment of a known client is then applied to the
    fidelity card. A failed redemption leaves nothing written.

    Args:
        appointment_id: Appointment id
        payment_method: A PaymentMethod value
        courtesy_reason: Required when payment_method is "courtesy"
        completed_at: Completion time (defaults to now)
        created_by: Who closed the appointment

    Returns:
        CheckoutResult

    Raises:
        BarbermanError: APPOINTMENT_NOT_FOUND, APPOINTMENT_NOT_COMPLETABLE,
            COURTESY_REASON_REQUIRED, COURTESY_REASON_TOO_LONG,
            CLIENT_NOT_FOUND or INSUFFICIENT_COURTESIES
    """
    payment_method = PaymentMethod(LEGACY_PAYMENT_LABELS.get(payment_method, payment_method))
    reason = (courtesy_reason or "").strip()

    if payment_method == PaymentMethod.COURTESY:
        if not reason:
            raise BarbermanError("COURTESY_REASON_REQUIRED")
        max_length = barberman_settings.COURTESY_REASON_MAX_LENGTH
        if len(reason) > max_length:
            raise BarbermanError(
                "COURTESY_REASON_TOO_LONG",
                max_length=max_length,
                length=len(reason),
            )

    with transaction.atomic():
        try:
            appointment = (
                Appointment.objects.select_for_update()
                .select_related("unit", "client")
                .get(pk=appointment_id)
            )
        except Appointment.DoesNotExist:
            raise BarbermanError("APPOINTMENT_NOT_FOUND", appointment_id=appointment_id)

        if appointment.status not in (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED):
            raise BarbermanError(
                "APPOINTMENT_NOT_COMPLETABLE",
                appointment_id=appointment_id,
                status=appointment.status,
            )

        client = resolve_client(appointment)
        if client is not None and appointment.client_id is None:
            appointment.client = client

        courtesy_used = False
        if payment_method == PaymentMethod.FIDELITY_COURTESY:
            if client is None:
                raise BarbermanError(
                    "CLIENT_NOT_FOUND",
                    message="Fidelity courtesy requires a registered client",
                    appointment_id=appointment_id,
                )
            FidelityService.consume_courtesy(
                client.code,
                reference=f"appointment:{appointment.pk}",
                created_by=created_by,
            )
            courtesy_used = True

        if payment_method == PaymentMethod.COURTESY:
            appointment.total_price = Decimal("0")
            note = f"{barberman_settings.COURTESY_NOTE_PREFIX} {reason}"
            appointment.notes = f"{appointment.notes}\n\n{note}" if appointment.notes else note

        appointment.status = AppointmentStatus.COMPLETED
        appointment.payment_method = payment_method
        appointment.completed_at = completed_at or timezone.now()
        appointment.save()

        accrual = None
        if client is not None:
            accrual = FidelityService.apply_qualifying_event(
                client.code,
                appointment,
                created_by=created_by,
            )

    logger.info(
        "Appointment %s completed (%s)%s",
        appointment.pk,
        payment_method,
        " - courtesy earned" if accrual and accrual.courtesy_earned else "",
    )
    return CheckoutResult(
        appointment=appointment,
        accrual=accrual,
        courtesy_used=courtesy_used,
    )


def extract_courtesy_reason(notes: str | None) -> str:
    """Reason recorded by a manual courtesy, else the raw notes ("-" if empty)."""
    if not notes:
        return "-"
    prefix = re.escape(barberman_settings.COURTESY_NOTE_PREFIX)
    match = re.search(rf"{prefix}\s*(.+?)(?:\n|$)", notes)
    return match.group(1).strip() if match else notes


def courtesy_report(
    unit_code: str,
    start: datetime,
    end: datetime,
    barber_name: str | None = None,
) -> CourtesyReport:
    """
    Manual courtesies completed in [start, end].

    The original value of each courtesy is the service price, since
    checkout zeroes the charged value.
    """
    qs = (
        Appointment.objects.filter(
            unit__code=unit_code,
            status=AppointmentStatus.COMPLETED,
            payment_method=PaymentMethod.COURTESY,
            start_time__gte=start,
            start_time__lte=end,
        )
        .select_related("client")
        .order_by("-start_time")
    )
    if barber_name:
        qs = qs.filter(barber_name=barber_name)

    report = CourtesyReport()
    by_barber: dict[str, BarberCourtesyStats] = {}

    for appointment in qs:
        name = appointment.barber_name or "Desconhecido"
        stats = by_barber.setdefault(name, BarberCourtesyStats(barber_name=name))
        stats.count += 1
        stats.original_value += appointment.service_price

        report.total += 1
        report.total_original_value += appointment.service_price
        report.items.append(
            CourtesyReportItem(
                appointment=appointment,
                reason=extract_courtesy_reason(appointment.notes),
            )
        )

    report.by_barber = sorted(by_barber.values(), key=lambda s: s.count, reverse=True)
    return report
