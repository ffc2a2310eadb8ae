"""FidelityEntry model - audit trail of fidelity counter changes."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class EntryType(models.TextChoices):
    """Fidelity entry types."""

    CUT = "cut", _("Corte")
    EARN = "earn", _("Cortesia ganha")
    REDEEM = "redeem", _("Cortesia utilizada")
    SYNC = "sync", _("Sincronização")


class FidelityEntry(models.Model):
    """
    Immutable record of a fidelity counter change.

    Every counted cut, earned courtesy, redemption, and reconciliation
    is logged here. Entries are append-only - never modified or deleted.
    """

    client = models.ForeignKey(
        "barberman.Client",
        on_delete=models.CASCADE,
        related_name="fidelity_entries",
        verbose_name=_("cliente"),
    )

    entry_type = models.CharField(
        _("tipo"),
        max_length=20,
        choices=EntryType.choices,
    )
    courtesies_delta = models.IntegerField(
        _("variação de cortesias"),
        default=0,
        help_text=_("Positivo para ganho, negativo para uso"),
    )
    loyalty_cuts_after = models.PositiveIntegerField(_("cortes após"))
    available_after = models.PositiveIntegerField(_("cortesias disponíveis após"))

    description = models.CharField(_("descrição"), max_length=200)
    reference = models.CharField(
        _("referência"),
        max_length=100,
        blank=True,
        help_text=_("ID externo (ex: appointment:123)"),
    )

    created_at = models.DateTimeField(_("criado em"), auto_now_add=True, db_index=True)
    created_by = models.CharField(_("criado por"), max_length=100, blank=True)

    class Meta:
        verbose_name = _("lançamento de fidelidade")
        verbose_name_plural = _("lançamentos de fidelidade")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["client", "-created_at"], name="barberman_entry_client_date"),
        ]

    def __str__(self):
        return f"{self.get_entry_type_display()}: {self.description}"
