"""Unit model (barbershop location) with its fidelity program settings."""

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


def _default_cuts_threshold():
    from barberman.conf import barberman_settings

    return barberman_settings.DEFAULT_CUTS_THRESHOLD


def _default_min_value():
    from barberman.conf import barberman_settings

    return Decimal(barberman_settings.DEFAULT_MIN_VALUE)


class Unit(models.Model):
    """
    Barbershop location.

    Clients and appointments belong to exactly one unit. The fidelity
    program is configured per unit and read-only to the accrual engine.
    """

    # Identification
    code = models.SlugField(_("código"), max_length=50, unique=True)
    name = models.CharField(_("nome"), max_length=200)

    # Fidelity program
    fidelity_program_enabled = models.BooleanField(
        _("programa de fidelidade ativo"),
        default=False,
    )
    fidelity_cuts_threshold = models.PositiveIntegerField(
        _("cortes para ganhar cortesia"),
        default=_default_cuts_threshold,
        validators=[MinValueValidator(1)],
        help_text=_("A cada N cortes, o cliente ganha 1 cortesia"),
    )
    fidelity_min_value = models.DecimalField(
        _("valor mínimo do serviço"),
        max_digits=10,
        decimal_places=2,
        default=_default_min_value,
        validators=[MinValueValidator(Decimal("0"))],
        help_text=_("Serviços a partir deste valor contam para fidelidade"),
    )

    # Status
    is_active = models.BooleanField(_("ativa"), default=True)

    # Extensible metadata
    metadata = models.JSONField(_("metadados"), default=dict, blank=True)

    # Audit
    created_at = models.DateTimeField(_("criado em"), auto_now_add=True)
    updated_at = models.DateTimeField(_("atualizado em"), auto_now=True)

    class Meta:
        verbose_name = _("unidade")
        verbose_name_plural = _("unidades")
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def fidelity_config(self):
        """Fidelity settings as an immutable FidelityConfig."""
        from barberman.conf import barberman_settings
        from barberman.rules import FidelityConfig

        return FidelityConfig(
            enabled=self.fidelity_program_enabled,
            cuts_threshold=self.fidelity_cuts_threshold,
            min_qualifying_value=Decimal(self.fidelity_min_value),
            courtesy_markers=frozenset(barberman_settings.COURTESY_PAYMENT_MARKERS),
        )
