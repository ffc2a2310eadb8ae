"""
Barberman fidelity rules - pure accrual and redemption logic.

No database access here. Services load state, apply these functions,
and persist the result inside a locked transaction.

    is_qualifying            - Does a completed visit count toward the card?
    apply_qualifying_event   - Accrue one completed visit
    consume_courtesy         - Redeem one available courtesy
    check_if_next_cut_is_free - Advisory check for the checkout screen
    reconcile                - Rebuild counters from full visit history
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from barberman.exceptions import BarbermanError

COURTESY_PAYMENT_MARKERS = frozenset({"Cortesia de Fidelidade", "fidelity_courtesy"})


class LoyaltyStage(str, Enum):
    """Where a client stands in the fidelity cycle."""

    ACCUMULATING = "accumulating"
    COURTESY_PENDING = "courtesy_pending"


@dataclass(frozen=True)
class FidelityConfig:
    """Per-unit fidelity program settings."""

    enabled: bool
    cuts_threshold: int
    min_qualifying_value: Decimal
    courtesy_markers: frozenset[str] = COURTESY_PAYMENT_MARKERS

    def __post_init__(self):
        if self.cuts_threshold < 1:
            raise BarbermanError(
                "INVALID_FIDELITY_CONFIG",
                message="Cuts threshold must be at least 1",
                cuts_threshold=self.cuts_threshold,
            )
        min_value = Decimal(self.min_qualifying_value)
        if not min_value.is_finite() or min_value < 0:
            raise BarbermanError(
                "INVALID_FIDELITY_CONFIG",
                message="Minimum qualifying value must be a non-negative number",
                min_qualifying_value=str(self.min_qualifying_value),
            )


@dataclass(frozen=True)
class LoyaltyState:
    """Snapshot of a client's fidelity counters."""

    loyalty_cuts: int = 0
    available_courtesies: int = 0
    total_courtesies_earned: int = 0
    total_visits: int = 0
    last_visit_at: datetime | None = None

    @property
    def stage(self) -> LoyaltyStage:
        if self.available_courtesies > 0:
            return LoyaltyStage.COURTESY_PENDING
        return LoyaltyStage.ACCUMULATING


@dataclass(frozen=True)
class QualifyingEvent:
    """One completed appointment, as seen by the fidelity rules."""

    total_price: Decimal
    payment_method: str
    completed_at: datetime | None = None
    reference: str = ""


@dataclass(frozen=True)
class AccrualResult:
    """Outcome of applying one visit."""

    state: LoyaltyState
    counted: bool = False
    courtesies_earned: int = 0

    @property
    def courtesy_earned(self) -> bool:
        return self.courtesies_earned > 0


@dataclass(frozen=True)
class FreeCutCheck:
    """Advisory result for the checkout screen."""

    is_free_cut: bool
    loyalty_cuts: int
    threshold: int


@dataclass(frozen=True)
class ReconciliationResult:
    """Counters rebuilt from appointment history."""

    loyalty_cuts: int
    total_visits: int
    total_courtesies_earned: int
    courtesies_redeemed: int
    available_courtesies: int
    last_visit_at: datetime | None = None
    qualifying_count: int = 0
    threshold: int = 0

    def as_state(self) -> LoyaltyState:
        return LoyaltyState(
            loyalty_cuts=self.loyalty_cuts,
            available_courtesies=self.available_courtesies,
            total_courtesies_earned=self.total_courtesies_earned,
            total_visits=self.total_visits,
            last_visit_at=self.last_visit_at,
        )


# =============================================================================
# Qualification
# =============================================================================


def is_courtesy_payment(payment_method: str, config: FidelityConfig) -> bool:
    return (payment_method or "") in config.courtesy_markers


def is_qualifying(event: QualifyingEvent, config: FidelityConfig) -> bool:
    """
    Decide whether a completed visit counts toward the fidelity card.

    A visit paid with a fidelity courtesy never earns further credit.
    Nothing qualifies while the program is disabled.
    """
    if not config.enabled:
        return False
    if Decimal(event.total_price) < Decimal(config.min_qualifying_value):
        return False
    return not is_courtesy_payment(event.payment_method, config)


# =============================================================================
# Accrual / redemption
# =============================================================================


def _latest(current: datetime | None, candidate: datetime | None) -> datetime | None:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def apply_qualifying_event(
    state: LoyaltyState,
    config: FidelityConfig,
    event: QualifyingEvent,
) -> AccrualResult:
    """
    Apply one completed visit to the client's counters.

    The caller guarantees each appointment is applied at most once.

    Args:
        state: Current counters
        config: Unit fidelity settings
        event: The completed visit

    Returns:
        AccrualResult with the new state, whether the visit counted,
        and how many courtesies were granted.
    """
    if not config.enabled:
        return AccrualResult(state=state)

    cuts = state.loyalty_cuts
    available = state.available_courtesies
    earned_total = state.total_courtesies_earned
    counted = False
    granted = 0

    # A pending courtesy freezes the card until checkout redeems it.
    if is_qualifying(event, config) and state.stage is LoyaltyStage.ACCUMULATING:
        cuts += 1
        counted = True

    if counted and cuts >= config.cuts_threshold:
        granted, cuts = divmod(cuts, config.cuts_threshold)
        available += granted
        earned_total += granted

    new_state = replace(
        state,
        loyalty_cuts=cuts,
        available_courtesies=available,
        total_courtesies_earned=earned_total,
        total_visits=state.total_visits + 1,
        last_visit_at=_latest(state.last_visit_at, event.completed_at),
    )
    return AccrualResult(state=new_state, counted=counted, courtesies_earned=granted)


def consume_courtesy(state: LoyaltyState) -> LoyaltyState:
    """
    Redeem one available courtesy.

    Raises:
        BarbermanError: INSUFFICIENT_COURTESIES if none is available
    """
    if state.available_courtesies <= 0:
        raise BarbermanError(
            "INSUFFICIENT_COURTESIES",
            available=state.available_courtesies,
        )
    return replace(state, available_courtesies=state.available_courtesies - 1)


def check_if_next_cut_is_free(
    state: LoyaltyState,
    config: FidelityConfig,
    candidate_value: Decimal,
) -> FreeCutCheck:
    """Tell checkout whether the service being charged should be the free one."""
    if not config.enabled:
        return FreeCutCheck(is_free_cut=False, loyalty_cuts=0, threshold=0)

    threshold = config.cuts_threshold
    if state.stage is LoyaltyStage.COURTESY_PENDING and Decimal(candidate_value) >= Decimal(
        config.min_qualifying_value
    ):
        return FreeCutCheck(is_free_cut=True, loyalty_cuts=threshold, threshold=threshold)

    return FreeCutCheck(
        is_free_cut=state.loyalty_cuts >= threshold,
        loyalty_cuts=state.loyalty_cuts,
        threshold=threshold,
    )


# =============================================================================
# Reconciliation
# =============================================================================


def reconcile(events, config: FidelityConfig) -> ReconciliationResult:
    """
    Rebuild a client's counters from every completed appointment.

    Unlike the incremental path, every qualifying visit counts, including
    those made while a courtesy was pending. Redemptions are the visits
    paid with a courtesy marker, so available courtesies are derived as
    earned minus redeemed (never negative).
    """
    qualifying = 0
    redeemed = 0
    visits = 0
    last_visit = None

    for event in events:
        visits += 1
        last_visit = _latest(last_visit, event.completed_at)
        if is_courtesy_payment(event.payment_method, config):
            redeemed += 1
        elif is_qualifying(event, config):
            qualifying += 1

    earned, cuts = divmod(qualifying, config.cuts_threshold)

    return ReconciliationResult(
        loyalty_cuts=cuts,
        total_visits=visits,
        total_courtesies_earned=earned,
        courtesies_redeemed=redeemed,
        available_courtesies=max(0, earned - redeemed),
        last_visit_at=last_visit,
        qualifying_count=qualifying,
        threshold=config.cuts_threshold,
    )
