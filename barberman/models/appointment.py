"""Appointment model - completed appointments feed the fidelity program."""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

LEGACY_PAYMENT_LABELS = {
    "Cortesia de Fidelidade": "fidelity_courtesy",
}


class AppointmentStatus(models.TextChoices):
    SCHEDULED = "scheduled", _("Agendado")
    CONFIRMED = "confirmed", _("Confirmado")
    COMPLETED = "completed", _("Concluído")
    CANCELLED = "cancelled", _("Cancelado")
    NO_SHOW = "no_show", _("Não compareceu")


class PaymentMethod(models.TextChoices):
    CASH = "cash", _("Dinheiro")
    PIX = "pix", _("PIX")
    DEBIT_CARD = "debit_card", _("Cartão de débito")
    CREDIT_CARD = "credit_card", _("Cartão de crédito")
    COURTESY = "courtesy", _("Cortesia")
    FIDELITY_COURTESY = "fidelity_courtesy", _("Cortesia de Fidelidade")
    OTHER = "other", _("Outro")


class Appointment(models.Model):
    """
    Scheduled service for a client.

    client is optional: walk-ins carry only client_name/client_phone and
    are linked to a Client at checkout when the phone matches.
    """

    unit = models.ForeignKey(
        "barberman.Unit",
        on_delete=models.PROTECT,
        related_name="appointments",
        verbose_name=_("unidade"),
    )
    client = models.ForeignKey(
        "barberman.Client",
        on_delete=models.SET_NULL,
        related_name="appointments",
        null=True,
        blank=True,
        verbose_name=_("cliente"),
    )
    client_name = models.CharField(_("nome do cliente"), max_length=200, blank=True)
    client_phone = models.CharField(_("telefone do cliente"), max_length=20, blank=True)

    barber_name = models.CharField(_("profissional"), max_length=200, blank=True)
    service_name = models.CharField(_("serviço"), max_length=200, blank=True)
    service_price = models.DecimalField(
        _("preço do serviço"),
        max_digits=10,
        decimal_places=2,
        default=Decimal("0"),
    )
    total_price = models.DecimalField(
        _("valor cobrado"),
        max_digits=10,
        decimal_places=2,
        default=Decimal("0"),
    )

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.SCHEDULED,
        db_index=True,
    )
    payment_method = models.CharField(
        _("forma de pagamento"),
        max_length=30,
        choices=PaymentMethod.choices,
        blank=True,
    )
    notes = models.TextField(_("observações"), blank=True)

    start_time = models.DateTimeField(_("início"), db_index=True)
    completed_at = models.DateTimeField(_("concluído em"), null=True, blank=True)
    loyalty_processed_at = models.DateTimeField(
        _("contabilizado na fidelidade em"),
        null=True,
        blank=True,
        help_text=_("Preenchido quando o atendimento é aplicado ao cartão fidelidade"),
    )

    created_at = models.DateTimeField(_("criado em"), auto_now_add=True)
    updated_at = models.DateTimeField(_("atualizado em"), auto_now=True)

    class Meta:
        verbose_name = _("agendamento")
        verbose_name_plural = _("agendamentos")
        ordering = ["-start_time"]
        indexes = [
            models.Index(fields=["unit", "status"], name="barberman_appt_unit_status"),
            models.Index(fields=["unit", "client_phone"], name="barberman_appt_unit_phone"),
        ]

    def __str__(self):
        who = self.client_name or (self.client.name if self.client_id else "?")
        return f"{who} - {self.service_name} ({self.get_status_display()})"

    @property
    def visit_at(self):
        """When the visit happened (completion time, else scheduled start)."""
        return self.completed_at or self.start_time

    @property
    def is_completed(self) -> bool:
        return self.status == AppointmentStatus.COMPLETED

    def as_qualifying_event(self):
        """This appointment as a fidelity QualifyingEvent."""
        from barberman.rules import QualifyingEvent

        return QualifyingEvent(
            total_price=Decimal(self.total_price),
            payment_method=self.payment_method,
            completed_at=self.visit_at,
            reference=f"appointment:{self.pk}",
        )

    def save(self, *args, **kwargs):
        self.payment_method = LEGACY_PAYMENT_LABELS.get(
            self.payment_method, self.payment_method
        )
        if self.client_phone:
            from barberman.utils import normalize_phone

            self.client_phone = normalize_phone(self.client_phone)
        super().save(*args, **kwargs)
