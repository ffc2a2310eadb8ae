"""Tests for FidelityService (accrual, redemption, reconciliation)."""

from decimal import Decimal
from unittest import mock

import pytest

from barberman.exceptions import BarbermanError
from barberman.models import Client, EntryType, FidelityEntry
from barberman.services.fidelity import FidelityService
from barberman.signals import courtesy_consumed, courtesy_earned, fidelity_recalculated

pytestmark = pytest.mark.django_db


def accrue(client, appointment):
    return FidelityService.apply_qualifying_event(client.code, appointment)


class _Receiver:
    """Collects signal kwargs while connected."""

    def __init__(self, signal):
        self.signal = signal
        self.calls = []

    def __call__(self, sender, **kwargs):
        self.calls.append(kwargs)

    def __enter__(self):
        self.signal.connect(self)
        return self

    def __exit__(self, *exc):
        self.signal.disconnect(self)


# ═══════════════════════════════════════════════════════════════════
# Accrual
# ═══════════════════════════════════════════════════════════════════


class TestApplyQualifyingEvent:
    """Tests for accruing a completed visit."""

    def test_counts_cut_and_stamps_appointment(self, client_joao, complete_visit):
        """Test a qualifying visit counts a cut and stamps the appointment."""
        appointment = complete_visit(client_joao)

        result = accrue(client_joao, appointment)

        client_joao.refresh_from_db()
        appointment.refresh_from_db()
        assert result.counted is True
        assert client_joao.loyalty_cuts == 1
        assert client_joao.total_visits == 1
        assert client_joao.last_visit_at == appointment.completed_at
        assert appointment.loyalty_processed_at is not None

        entry = FidelityEntry.objects.get(client=client_joao)
        assert entry.entry_type == EntryType.CUT
        assert entry.description == "Corte 1/5"
        assert entry.reference == f"appointment:{appointment.pk}"

    def test_example_scenario(self, client_joao, complete_visit):
        """Threshold 5, minimum R$ 30, visits of R$ 40."""
        for _ in range(4):
            accrue(client_joao, complete_visit(client_joao))
        client_joao.refresh_from_db()
        assert (client_joao.loyalty_cuts, client_joao.available_courtesies) == (4, 0)

        result = accrue(client_joao, complete_visit(client_joao))
        client_joao.refresh_from_db()
        assert result.courtesy_earned is True
        assert client_joao.loyalty_cuts == 0
        assert client_joao.available_courtesies == 1
        assert client_joao.total_courtesies_earned == 1

        FidelityService.consume_courtesy(client_joao.code)
        client_joao.refresh_from_db()
        assert client_joao.available_courtesies == 0

        accrue(client_joao, complete_visit(client_joao))
        client_joao.refresh_from_db()
        assert client_joao.loyalty_cuts == 1

    def test_earn_logs_cut_and_earn_entries(self, client_joao, complete_visit):
        """Test a full card logs a cut and an earn entry."""
        client_joao.loyalty_cuts = 4
        client_joao.save()

        accrue(client_joao, complete_visit(client_joao))

        entries = list(FidelityEntry.objects.filter(client=client_joao).order_by("id"))
        assert [e.entry_type for e in entries] == [EntryType.CUT, EntryType.EARN]
        assert entries[0].description == "Cartela completa!"
        assert entries[1].courtesies_delta == 1
        assert entries[1].available_after == 1

    def test_earn_sends_signal(self, client_joao, complete_visit):
        """Test courtesy_earned is sent."""
        client_joao.loyalty_cuts = 4
        client_joao.save()
        appointment = complete_visit(client_joao)

        with _Receiver(courtesy_earned) as receiver:
            accrue(client_joao, appointment)

        assert len(receiver.calls) == 1
        assert receiver.calls[0]["count"] == 1
        assert receiver.calls[0]["reference"] == f"appointment:{appointment.pk}"

    def test_pending_courtesy_blocks_accrual(self, client_joao, complete_visit):
        """Test cuts stay frozen while a courtesy is pending."""
        client_joao.available_courtesies = 1
        client_joao.total_courtesies_earned = 1
        client_joao.save()

        result = accrue(client_joao, complete_visit(client_joao))

        client_joao.refresh_from_db()
        assert result.counted is False
        assert client_joao.loyalty_cuts == 0
        assert client_joao.available_courtesies == 1
        assert client_joao.total_visits == 1
        assert not FidelityEntry.objects.filter(client=client_joao).exists()

    def test_below_minimum_counts_visit_only(self, client_joao, complete_visit):
        """Test a cheap service only counts as a visit."""
        result = accrue(client_joao, complete_visit(client_joao, price=Decimal("25.00")))

        client_joao.refresh_from_db()
        assert result.counted is False
        assert client_joao.loyalty_cuts == 0
        assert client_joao.total_visits == 1

    def test_fidelity_courtesy_payment_never_counts(self, client_joao, complete_visit):
        """Test a visit paid with a courtesy adds no cut."""
        client_joao.loyalty_cuts = 4
        client_joao.save()

        accrue(client_joao, complete_visit(client_joao, payment_method="fidelity_courtesy"))

        client_joao.refresh_from_db()
        assert client_joao.loyalty_cuts == 4
        assert client_joao.available_courtesies == 0

    def test_same_appointment_counted_once(self, client_joao, complete_visit):
        """Test an appointment is counted at most once."""
        appointment = complete_visit(client_joao)
        accrue(client_joao, appointment)

        with pytest.raises(BarbermanError) as exc:
            accrue(client_joao, appointment)

        assert exc.value.code == "APPOINTMENT_ALREADY_PROCESSED"
        client_joao.refresh_from_db()
        assert client_joao.loyalty_cuts == 1
        assert client_joao.total_visits == 1

    def test_not_completed_rejected(self, client_joao, make_appointment):
        """Test only completed appointments are accepted."""
        appointment = make_appointment(client_joao)

        with pytest.raises(BarbermanError) as exc:
            accrue(client_joao, appointment)

        assert exc.value.code == "APPOINTMENT_NOT_COMPLETABLE"
        assert exc.value.data["status"] == "scheduled"

    def test_unknown_client(self, client_joao, complete_visit):
        """Test accrual for an unknown client."""
        with pytest.raises(BarbermanError) as exc:
            FidelityService.apply_qualifying_event("NOPE", complete_visit(client_joao))
        assert exc.value.code == "CLIENT_NOT_FOUND"

    def test_other_clients_appointment_rejected(self, client_joao, client_pedro, complete_visit):
        """Test another client's appointment is not credited and stays available to its owner."""
        appointment = complete_visit(client_pedro)

        with pytest.raises(BarbermanError) as exc:
            accrue(client_joao, appointment)

        assert exc.value.code == "APPOINTMENT_CLIENT_MISMATCH"
        client_joao.refresh_from_db()
        appointment.refresh_from_db()
        assert client_joao.loyalty_cuts == 0
        assert client_joao.total_visits == 0
        assert appointment.loyalty_processed_at is None
        assert accrue(client_pedro, appointment).counted is True

    def test_other_units_appointment_rejected(self, client_joao, unit_disabled, complete_visit):
        """Test an appointment from another unit is rejected."""
        appointment = complete_visit(unit=unit_disabled)

        with pytest.raises(BarbermanError, match="APPOINTMENT_CLIENT_MISMATCH"):
            accrue(client_joao, appointment)

    def test_unlinked_appointment_of_same_unit(self, client_joao, complete_visit):
        """Test a walk-in appointment of the client's unit can be credited."""
        result = accrue(client_joao, complete_visit(client_name="João"))
        assert result.counted is True

    def test_locks_appointment_before_client(self, client_joao, complete_visit):
        """Test rows are locked appointment first, then client, as checkout does."""
        appointment = complete_visit(client_joao)
        calls = []
        lock_appointment = FidelityService._get_appointment_for_update.__func__
        lock_client = FidelityService._get_client_for_update.__func__

        def tracked_appointment(cls, appointment_id):
            calls.append("appointment")
            return lock_appointment(cls, appointment_id)

        def tracked_client(cls, client_code):
            calls.append("client")
            return lock_client(cls, client_code)

        with mock.patch.object(
            FidelityService, "_get_appointment_for_update", classmethod(tracked_appointment)
        ), mock.patch.object(FidelityService, "_get_client_for_update", classmethod(tracked_client)):
            accrue(client_joao, appointment)

        assert calls == ["appointment", "client"]

    def test_disabled_program_is_noop(self, unit_disabled, make_appointment):
        """Test accrual on a disabled unit changes nothing."""
        client = Client.objects.create(unit=unit_disabled, code="CLI-900", name="Ana")
        appointment = make_appointment(
            client, unit=unit_disabled, status="completed", payment_method="cash"
        )

        for _ in range(3):
            result = FidelityService.apply_qualifying_event(client.code, appointment)
            assert result.counted is False

        client.refresh_from_db()
        appointment.refresh_from_db()
        assert client.loyalty_cuts == 0
        assert client.total_visits == 0
        assert appointment.loyalty_processed_at is None
        assert not FidelityEntry.objects.exists()


# ═══════════════════════════════════════════════════════════════════
# Redemption
# ═══════════════════════════════════════════════════════════════════


class TestConsumeCourtesy:
    """Tests for courtesy redemption."""

    def test_consumes_one(self, client_joao):
        """Test redeeming one courtesy."""
        client_joao.loyalty_cuts = 2
        client_joao.available_courtesies = 2
        client_joao.total_courtesies_earned = 2
        client_joao.save()

        with _Receiver(courtesy_consumed) as receiver:
            client = FidelityService.consume_courtesy(
                client_joao.code, reference="appointment:9", created_by="caixa"
            )

        assert client.available_courtesies == 1
        assert client.loyalty_cuts == 2
        assert client.total_courtesies_earned == 2
        assert receiver.calls[0]["reference"] == "appointment:9"

        entry = FidelityEntry.objects.get(client=client_joao)
        assert entry.entry_type == EntryType.REDEEM
        assert entry.courtesies_delta == -1
        assert entry.available_after == 1
        assert entry.created_by == "caixa"

    def test_none_available(self, client_joao):
        """Test redeeming with no courtesy leaves state unchanged."""
        with pytest.raises(BarbermanError) as exc:
            FidelityService.consume_courtesy(client_joao.code)

        assert exc.value.code == "INSUFFICIENT_COURTESIES"
        assert exc.value.data["client_code"] == client_joao.code
        client_joao.refresh_from_db()
        assert client_joao.available_courtesies == 0
        assert not FidelityEntry.objects.exists()

    def test_inactive_client(self, client_joao):
        """Test inactive clients cannot redeem."""
        client_joao.available_courtesies = 1
        client_joao.is_active = False
        client_joao.save()

        with pytest.raises(BarbermanError, match="CLIENT_NOT_FOUND"):
            FidelityService.consume_courtesy(client_joao.code)


# ═══════════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════════


class TestQueries:
    """Tests for read-only fidelity queries."""

    def test_get_state(self, client_joao):
        """Test reading the counters."""
        client_joao.loyalty_cuts = 3
        client_joao.save()

        state = FidelityService.get_state(client_joao.code)

        assert state.loyalty_cuts == 3
        assert state.stage.value == "accumulating"

    def test_is_qualifying(self, complete_visit):
        """Test qualification of stored appointments."""
        assert FidelityService.is_qualifying(complete_visit(price=Decimal("30.00"))) is True
        assert FidelityService.is_qualifying(complete_visit(price=Decimal("29.00"))) is False

    def test_next_cut_free_with_pending_courtesy(self, client_joao):
        """Test a pending courtesy makes the next cut free."""
        client_joao.available_courtesies = 1
        client_joao.save()

        check = FidelityService.check_if_next_cut_is_free(client_joao.code, "45.00")

        assert check.is_free_cut is True
        assert check.threshold == 5

    def test_next_cut_not_free_mid_cycle(self, client_joao):
        """Test mid-cycle cuts are not free."""
        client_joao.loyalty_cuts = 2
        client_joao.save()

        check = FidelityService.check_if_next_cut_is_free(client_joao.code, Decimal("45"))

        assert (check.is_free_cut, check.loyalty_cuts) == (False, 2)

    def test_check_cycle_completion(self, client_joao, complete_visit):
        """Test cycle completion against a snapshot."""
        client_joao.loyalty_cuts = 4
        client_joao.save()
        before = client_joao.available_courtesies

        accrue(client_joao, complete_visit(client_joao))

        assert FidelityService.check_cycle_completion(client_joao.code, before) == (True, 1)
        assert FidelityService.check_cycle_completion(client_joao.code, 1) == (False, 1)

    def test_get_entries_most_recent_first(self, client_joao, complete_visit):
        """Test the ledger is newest first and limited."""
        for _ in range(3):
            accrue(client_joao, complete_visit(client_joao))

        entries = FidelityService.get_entries(client_joao.code, limit=2)

        assert [e.description for e in entries] == ["Corte 3/5", "Corte 2/5"]


# ═══════════════════════════════════════════════════════════════════
# Reconciliation
# ═══════════════════════════════════════════════════════════════════


class TestRecalculate:
    """Tests for single-client reconciliation."""

    def test_rebuilds_from_history(self, client_joao, complete_visit):
        """Test counters are rebuilt from history."""
        for _ in range(7):
            complete_visit(client_joao)
        complete_visit(client_joao, price=Decimal("20.00"))
        last = complete_visit(client_joao, payment_method="fidelity_courtesy")

        result = FidelityService.recalculate(client_joao.code)

        client_joao.refresh_from_db()
        assert result.qualifying_count == 7
        assert client_joao.loyalty_cuts == 2
        assert client_joao.total_courtesies_earned == 1
        assert client_joao.available_courtesies == 0
        assert client_joao.total_visits == 9
        assert client_joao.last_visit_at == last.completed_at

        entry = FidelityEntry.objects.get(client=client_joao)
        assert entry.entry_type == EntryType.SYNC
        assert entry.description == "Sincronizado: 2/5 cortes, 9 visitas"

    def test_idempotent(self, client_joao, complete_visit):
        """Test recalculating twice gives the same result."""
        for _ in range(6):
            complete_visit(client_joao)

        first = FidelityService.recalculate(client_joao.code)
        state = FidelityService.get_state(client_joao.code)
        second = FidelityService.recalculate(client_joao.code)

        assert first == second
        assert FidelityService.get_state(client_joao.code) == state
        assert FidelityEntry.objects.filter(entry_type=EntryType.SYNC).count() == 1

    def test_matches_unlinked_appointments(self, client_joao, complete_visit):
        """Test unlinked appointments match by phone or name."""
        complete_visit(client_phone="41 99999-0001", client_name="Outro Nome")
        complete_visit(client_name="joão silva")
        complete_visit(client_name="Alguém", client_phone="41988887777")

        result = FidelityService.recalculate(client_joao.code)

        assert result.total_visits == 2

    def test_ignores_other_clients_appointments(self, client_joao, client_pedro, complete_visit):
        """Test appointments linked to others are ignored."""
        complete_visit(client_pedro, client_name="João Silva")
        complete_visit(client_joao)

        assert FidelityService.recalculate(client_joao.code).total_visits == 1

    def test_sends_signal(self, client_joao, complete_visit):
        """Test fidelity_recalculated is sent."""
        complete_visit(client_joao)

        with _Receiver(fidelity_recalculated) as receiver:
            result = FidelityService.recalculate(client_joao.code)

        assert receiver.calls[0]["result"] == result
        assert receiver.calls[0]["client"].code == client_joao.code

    def test_disabled_program(self, unit_disabled):
        """Test recalculation on a disabled unit."""
        client = Client.objects.create(unit=unit_disabled, code="CLI-900", name="Ana")

        with pytest.raises(BarbermanError) as exc:
            FidelityService.recalculate(client.code)

        assert exc.value.code == "FIDELITY_PROGRAM_DISABLED"

    def test_uses_configured_backend(self, client_joao, settings):
        """Test the history backend comes from settings."""
        settings.BARBERMAN = {
            "APPOINTMENT_HISTORY_BACKEND": "barberman.tests.test_fidelity.EmptyHistoryBackend",
        }
        client_joao.loyalty_cuts = 3
        client_joao.save()

        FidelityService.recalculate(client_joao.code)

        client_joao.refresh_from_db()
        assert client_joao.loyalty_cuts == 0


class EmptyHistoryBackend:
    """History backend with no appointments."""

    def list_completed_appointments(self, client):
        return []


def test_backends_satisfy_protocol():
    """Test both history backends satisfy the protocol."""
    from barberman.adapters.appointments import DjangoAppointmentHistoryBackend
    from barberman.protocols import AppointmentHistoryBackend

    assert isinstance(DjangoAppointmentHistoryBackend(), AppointmentHistoryBackend)
    assert isinstance(EmptyHistoryBackend(), AppointmentHistoryBackend)


class TestRecalculateUnit:
    """Tests for bulk reconciliation."""

    def test_whole_unit(self, unit, client_joao, client_pedro, complete_visit):
        """Test syncing a unit counts processed and updated clients."""
        complete_visit(client_joao)
        complete_visit(client_pedro)
        FidelityService.recalculate(client_pedro.code)

        summary = FidelityService.recalculate_unit(unit.code)

        assert summary.processed == 2
        assert summary.updated == 1
        assert summary.failed == []

    def test_all_enabled_units(self, client_joao, unit_disabled, complete_visit):
        """Test bulk sync skips disabled units."""
        Client.objects.create(unit=unit_disabled, code="CLI-900", name="Ana")
        complete_visit(client_joao)

        summary = FidelityService.recalculate_unit()

        assert summary.processed == 1
        assert summary.updated == 1

    def test_one_failure_does_not_stop_batch(self, unit, client_joao, client_pedro, complete_visit):
        """Test a failing client does not stop the batch."""
        complete_visit(client_pedro)
        original = FidelityService._recalculate.__func__

        def flaky(cls, code, created_by=""):
            if code == client_joao.code:
                raise RuntimeError("boom")
            return original(cls, code, created_by=created_by)

        with mock.patch.object(FidelityService, "_recalculate", classmethod(flaky)):
            summary = FidelityService.recalculate_unit(unit.code)

        assert summary.processed == 2
        assert summary.failed == [client_joao.code]
        client_pedro.refresh_from_db()
        assert client_pedro.total_visits == 1

    def test_disabled_unit_rejected(self, unit_disabled):
        """Test syncing a disabled unit."""
        with pytest.raises(BarbermanError) as exc:
            FidelityService.recalculate_unit(unit_disabled.code)
        assert exc.value.code == "FIDELITY_PROGRAM_DISABLED"

    def test_unknown_unit(self, db):
        """Test syncing an unknown unit."""
        with pytest.raises(BarbermanError) as exc:
            FidelityService.recalculate_unit("nowhere")
        assert exc.value.code == "UNIT_NOT_CONFIGURED"
