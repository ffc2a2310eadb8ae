"""Fidelity service - accrual, redemption, and reconciliation of courtesies."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import transaction
from django.utils import timezone
from django.utils.module_loading import import_string

from barberman import rules
from barberman.conf import barberman_settings
from barberman.exceptions import BarbermanError
from barberman.models import (
    Appointment,
    Client,
    EntryType,
    FidelityEntry,
    Unit,
)
from barberman.protocols.appointments import AppointmentHistoryBackend
from barberman.signals import courtesy_consumed, courtesy_earned, fidelity_recalculated

logger = logging.getLogger(__name__)


def _get_history_backend() -> AppointmentHistoryBackend:
    """Get configured AppointmentHistoryBackend."""
    backend_class = import_string(barberman_settings.APPOINTMENT_HISTORY_BACKEND)
    return backend_class()


@dataclass
class SyncSummary:
    """Result of a bulk reconciliation."""

    processed: int = 0
    updated: int = 0
    failed: list[str] = field(default_factory=list)


class FidelityService:
    """
    Service for fidelity program operations.

    Uses @classmethod for extensibility (consistent with other services).
    All counter mutations run inside transaction.atomic() with the client
    row locked, so concurrent checkouts for one client cannot lose updates.
    """

    @classmethod
    def get_state(cls, client_code: str) -> rules.LoyaltyState:
        """Current fidelity counters of a client."""
        return cls._get_client(client_code).loyalty_state

    @classmethod
    def is_qualifying(cls, appointment: Appointment) -> bool:
        """Whether a completed appointment counts toward its unit's program."""
        return rules.is_qualifying(
            appointment.as_qualifying_event(),
            appointment.unit.fidelity_config,
        )

    @classmethod
    def apply_qualifying_event(
        cls,
        client_code: str,
        appointment: Appointment,
        created_by: str = "",
    ) -> rules.AccrualResult:
        """
        Apply a completed appointment to the client's fidelity card.

        Each appointment is counted at most once; the appointment is stamped
        with loyalty_processed_at. While the unit's program is disabled this
        is a no-op and the appointment is left unstamped.

        Args:
            client_code: Client code
            appointment: Completed appointment
            created_by: Who triggered the accrual

        Returns:
            AccrualResult (new state, whether it counted, courtesies earned)

        Raises:
            BarbermanError: CLIENT_NOT_FOUND, APPOINTMENT_NOT_COMPLETABLE,
                APPOINTMENT_CLIENT_MISMATCH or APPOINTMENT_ALREADY_PROCESSED
        """
        reference = f"appointment:{appointment.pk}"

        with transaction.atomic():
            # Lock order: appointment, then client (same as checkout).
            appointment = cls._get_appointment_for_update(appointment.pk)
            client = cls._get_client_for_update(client_code)

            if appointment.unit_id != client.unit_id or appointment.client_id not in (
                None,
                client.pk,
            ):
                raise BarbermanError(
                    "APPOINTMENT_CLIENT_MISMATCH",
                    appointment_id=appointment.pk,
                    client_code=client_code,
                )
            if not appointment.is_completed:
                raise BarbermanError(
                    "APPOINTMENT_NOT_COMPLETABLE",
                    message="Only completed appointments count for fidelity",
                    appointment_id=appointment.pk,
                    status=appointment.status,
                )
            if appointment.loyalty_processed_at is not None:
                raise BarbermanError(
                    "APPOINTMENT_ALREADY_PROCESSED",
                    appointment_id=appointment.pk,
                )

            config = client.unit.fidelity_config
            if not config.enabled:
                return rules.AccrualResult(state=client.loyalty_state)

            result = rules.apply_qualifying_event(
                client.loyalty_state,
                config,
                appointment.as_qualifying_event(),
            )
            changed = client.apply_loyalty_state(result.state)
            client.save(update_fields=changed + ["updated_at"])

            appointment.loyalty_processed_at = timezone.now()
            appointment.save(update_fields=["loyalty_processed_at", "updated_at"])

            if result.counted:
                if result.courtesy_earned:
                    description = "Cartela completa!"
                else:
                    description = f"Corte {client.loyalty_cuts}/{config.cuts_threshold}"
                cls._log_entry(
                    client,
                    EntryType.CUT,
                    description=description,
                    reference=reference,
                    created_by=created_by,
                )
            if result.courtesy_earned:
                cls._log_entry(
                    client,
                    EntryType.EARN,
                    courtesies_delta=result.courtesies_earned,
                    description="Cortesia de fidelidade ganha",
                    reference=reference,
                    created_by=created_by,
                )

        if result.courtesy_earned:
            logger.info(
                "Client %s earned %d courtesy(ies) (%s)",
                client.code,
                result.courtesies_earned,
                reference,
            )
            courtesy_earned.send(
                sender=Client,
                client=client,
                count=result.courtesies_earned,
                reference=reference,
            )
        return result

    @classmethod
    def consume_courtesy(
        cls,
        client_code: str,
        reference: str = "",
        created_by: str = "",
    ) -> Client:
        """
        Redeem one available courtesy.

        Never called implicitly: checkout invokes it when staff apply a
        fidelity courtesy to a transaction.

        Args:
            client_code: Client code
            reference: External reference (appointment:123)
            created_by: Who applied the courtesy

        Returns:
            Updated Client

        Raises:
            BarbermanError: CLIENT_NOT_FOUND or INSUFFICIENT_COURTESIES
        """
        with transaction.atomic():
            client = cls._get_client_for_update(client_code)

            try:
                new_state = rules.consume_courtesy(client.loyalty_state)
            except BarbermanError as e:
                e.data["client_code"] = client_code
                raise

            changed = client.apply_loyalty_state(new_state)
            client.save(update_fields=changed + ["updated_at"])

            cls._log_entry(
                client,
                EntryType.REDEEM,
                courtesies_delta=-1,
                description="Cortesia de fidelidade utilizada",
                reference=reference,
                created_by=created_by,
            )

        logger.info("Client %s redeemed a courtesy (%s)", client.code, reference or "-")
        courtesy_consumed.send(sender=Client, client=client, reference=reference)
        return client

    @classmethod
    def check_if_next_cut_is_free(
        cls,
        client_code: str,
        candidate_value: Decimal,
    ) -> rules.FreeCutCheck:
        """Advisory: should the service being charged be the free one?"""
        client = cls._get_client(client_code)
        return rules.check_if_next_cut_is_free(
            client.loyalty_state,
            client.unit.fidelity_config,
            Decimal(str(candidate_value)),
        )

    @classmethod
    def check_cycle_completion(
        cls,
        client_code: str,
        courtesies_before: int,
    ) -> tuple[bool, int]:
        """
        Compare available courtesies against a snapshot taken before checkout.

        Returns:
            Tuple of (earned: bool, current_courtesies: int)
        """
        current = cls._get_client(client_code).available_courtesies
        return current > courtesies_before, current

    # ======================================================================
    # Reconciliation
    # ======================================================================

    @classmethod
    def recalculate(cls, client_code: str, created_by: str = "") -> rules.ReconciliationResult:
        """
        Rebuild a client's counters from the full appointment history.

        Idempotent: running it twice on unchanged history gives the same
        counters.

        Raises:
            BarbermanError: CLIENT_NOT_FOUND or FIDELITY_PROGRAM_DISABLED
        """
        result, _ = cls._recalculate(client_code, created_by=created_by)
        return result

    @classmethod
    def recalculate_unit(
        cls,
        unit_code: str | None = None,
        created_by: str = "",
    ) -> SyncSummary:
        """
        Reconcile every active client of a unit, or of all enabled units.

        Each client runs in its own transaction. A failing client is logged
        and listed in SyncSummary.failed; the batch carries on.

        Raises:
            BarbermanError: UNIT_NOT_CONFIGURED, or FIDELITY_PROGRAM_DISABLED
                when a single unit is requested and its program is off
        """
        if unit_code is not None:
            try:
                unit = Unit.objects.get(code=unit_code, is_active=True)
            except Unit.DoesNotExist:
                raise BarbermanError("UNIT_NOT_CONFIGURED", unit_code=unit_code)
            if not unit.fidelity_program_enabled:
                logger.warning("Fidelity sync requested for unit %s with program disabled", unit_code)
                raise BarbermanError("FIDELITY_PROGRAM_DISABLED", unit_code=unit_code)
            units = [unit]
        else:
            units = list(
                Unit.objects.filter(is_active=True, fidelity_program_enabled=True)
            )

        summary = SyncSummary()
        for unit in units:
            client_codes = list(
                Client.objects.filter(unit=unit, is_active=True).values_list("code", flat=True)
            )
            for code in client_codes:
                summary.processed += 1
                try:
                    _, changed = cls._recalculate(code, created_by=created_by)
                except Exception:
                    logger.exception("Fidelity sync failed for client %s", code)
                    summary.failed.append(code)
                    continue
                if changed:
                    summary.updated += 1

        logger.info(
            "Fidelity sync: %d processed, %d updated, %d failed",
            summary.processed,
            summary.updated,
            len(summary.failed),
        )
        return summary

    @classmethod
    def get_entries(cls, client_code: str, limit: int = 50) -> list[FidelityEntry]:
        """Get fidelity ledger for a client (most recent first)."""
        return list(
            FidelityEntry.objects.filter(
                client__code=client_code,
                client__is_active=True,
            )[:limit]
        )

    # ======================================================================
    # Internals
    # ======================================================================

    @classmethod
    def _recalculate(
        cls,
        client_code: str,
        created_by: str = "",
    ) -> tuple[rules.ReconciliationResult, bool]:
        with transaction.atomic():
            client = cls._get_client_for_update(client_code)
            config = client.unit.fidelity_config
            if not config.enabled:
                raise BarbermanError(
                    "FIDELITY_PROGRAM_DISABLED",
                    unit_code=client.unit.code,
                )

            events = _get_history_backend().list_completed_appointments(client)
            result = rules.reconcile(events, config)

            changed = client.apply_loyalty_state(result.as_state())
            if changed:
                client.save(update_fields=changed + ["updated_at"])
                cls._log_entry(
                    client,
                    EntryType.SYNC,
                    description=(
                        f"Sincronizado: {result.loyalty_cuts}/{result.threshold} cortes, "
                        f"{result.total_visits} visitas"
                    ),
                    created_by=created_by,
                )

        fidelity_recalculated.send(sender=Client, client=client, result=result)
        return result, bool(changed)

    @classmethod
    def _log_entry(
        cls,
        client: Client,
        entry_type: str,
        description: str,
        courtesies_delta: int = 0,
        reference: str = "",
        created_by: str = "",
    ) -> FidelityEntry:
        return FidelityEntry.objects.create(
            client=client,
            entry_type=entry_type,
            courtesies_delta=courtesies_delta,
            loyalty_cuts_after=client.loyalty_cuts,
            available_after=client.available_courtesies,
            description=description,
            reference=reference,
            created_by=created_by,
        )

    @classmethod
    def _get_client(cls, client_code: str) -> Client:
        """Get active client or raise."""
        try:
            return Client.objects.select_related("unit").get(
                code=client_code,
                is_active=True,
            )
        except Client.DoesNotExist:
            raise BarbermanError("CLIENT_NOT_FOUND", client_code=client_code)

    @classmethod
    def _get_client_for_update(cls, client_code: str) -> Client:
        """
        Get active client with row-level lock for mutation.

        MUST be called inside transaction.atomic().
        Prevents lost-update race conditions on concurrent accrual/redemption.
        """
        try:
            return (
                Client.objects
                .select_for_update()
                .select_related("unit")
                .get(code=client_code, is_active=True)
            )
        except Client.DoesNotExist:
            raise BarbermanError("CLIENT_NOT_FOUND", client_code=client_code)

    @classmethod
    def _get_appointment_for_update(cls, appointment_id: int) -> Appointment:
        try:
            return (
                Appointment.objects
                .select_for_update()
                .select_related("unit")
                .get(pk=appointment_id)
            )
        except Appointment.DoesNotExist:
            raise BarbermanError("APPOINTMENT_NOT_FOUND", appointment_id=appointment_id)
