"""Client model with fidelity counters.

Data architecture:
    Client.loyalty_cuts / available_courtesies / total_courtesies_earned
        Fidelity counters. Written only by FidelityService, always under
        select_for_update() so concurrent checkouts cannot lose updates.

    Client.total_visits / last_visit_at
        Visit statistics, updated on every completed appointment while the
        unit's program is enabled, and rebuilt by reconciliation.

    FidelityEntry
        Append-only audit trail of every counter change.
"""

import uuid as uuid_lib

from django.db import models
from django.utils.translation import gettext_lazy as _


class Client(models.Model):
    """Barbershop client, scoped to one unit."""

    unit = models.ForeignKey(
        "barberman.Unit",
        on_delete=models.PROTECT,
        related_name="clients",
        verbose_name=_("unidade"),
    )

    # Identification
    code = models.CharField(
        _("código"),
        max_length=50,
        unique=True,
        help_text=_("Código único do cliente (ex: CLI-001)"),
    )
    uuid = models.UUIDField(default=uuid_lib.uuid4, editable=False, unique=True)
    name = models.CharField(_("nome"), max_length=200)

    # Contact
    phone = models.CharField(_("telefone"), max_length=20, blank=True, db_index=True)
    email = models.EmailField(_("email"), blank=True)

    # Fidelity counters
    loyalty_cuts = models.PositiveIntegerField(
        _("cortes de fidelidade"),
        default=0,
        help_text=_("Cortes acumulados desde a última cortesia"),
    )
    available_courtesies = models.PositiveIntegerField(
        _("cortesias disponíveis"),
        default=0,
        help_text=_("Cortesias ganhas e ainda não utilizadas"),
    )
    total_courtesies_earned = models.PositiveIntegerField(
        _("cortesias ganhas"),
        default=0,
        help_text=_("Total de cortesias já ganhas (nunca decresce)"),
    )
    total_visits = models.PositiveIntegerField(_("total de visitas"), default=0)
    last_visit_at = models.DateTimeField(_("última visita"), null=True, blank=True)

    # Status
    is_active = models.BooleanField(_("ativo"), default=True, db_index=True)
    notes = models.TextField(_("observações"), blank=True)

    # Audit
    created_at = models.DateTimeField(_("criado em"), auto_now_add=True)
    updated_at = models.DateTimeField(_("atualizado em"), auto_now=True)

    class Meta:
        verbose_name = _("cliente")
        verbose_name_plural = _("clientes")
        ordering = ["name"]
        indexes = [
            models.Index(fields=["unit", "phone"], name="barberman_client_unit_phone"),
        ]

    def __str__(self):
        return f"{self.name} ({self.code})"

    @property
    def loyalty_state(self):
        """Fidelity counters as an immutable LoyaltyState."""
        from barberman.rules import LoyaltyState

        return LoyaltyState(
            loyalty_cuts=self.loyalty_cuts,
            available_courtesies=self.available_courtesies,
            total_courtesies_earned=self.total_courtesies_earned,
            total_visits=self.total_visits,
            last_visit_at=self.last_visit_at,
        )

    def apply_loyalty_state(self, state) -> list[str]:
        """Copy a LoyaltyState onto this row. Returns the changed field names."""
        changed = []
        for field_name in (
            "loyalty_cuts",
            "available_courtesies",
            "total_courtesies_earned",
            "total_visits",
            "last_visit_at",
        ):
            value = getattr(state, field_name)
            if getattr(self, field_name) != value:
                setattr(self, field_name, value)
                changed.append(field_name)
        return changed

    @property
    def stamps_progress_percent(self) -> int:
        """Fidelity card completion percentage (0-100)."""
        threshold = self.unit.fidelity_cuts_threshold
        if threshold <= 0:
            return 100
        return min(100, int(self.loyalty_cuts / threshold * 100))

    def save(self, *args, **kwargs):
        if self.phone:
            from barberman.utils import normalize_phone

            self.phone = normalize_phone(self.phone)

        if self.email:
            self.email = self.email.lower().strip()

        super().save(*args, **kwargs)
