# Generated migration for Unit, Client, Appointment and FidelityEntry

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

import barberman.models.unit


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Unit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.SlugField(unique=True, verbose_name="código")),
                ("name", models.CharField(max_length=200, verbose_name="nome")),
                (
                    "fidelity_program_enabled",
                    models.BooleanField(default=False, verbose_name="programa de fidelidade ativo"),
                ),
                (
                    "fidelity_cuts_threshold",
                    models.PositiveIntegerField(
                        default=barberman.models.unit._default_cuts_threshold,
                        help_text="A cada N cortes, o cliente ganha 1 cortesia",
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="cortes para ganhar cortesia",
                    ),
                ),
                (
                    "fidelity_min_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=barberman.models.unit._default_min_value,
                        help_text="Serviços a partir deste valor contam para fidelidade",
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="valor mínimo do serviço",
                    ),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="ativa")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadados")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="atualizado em")),
            ],
            options={
                "verbose_name": "unidade",
                "verbose_name_plural": "unidades",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Client",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "code",
                    models.CharField(
                        help_text="Código único do cliente (ex: CLI-001)",
                        max_length=50,
                        unique=True,
                        verbose_name="código",
                    ),
                ),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("name", models.CharField(max_length=200, verbose_name="nome")),
                ("phone", models.CharField(blank=True, db_index=True, max_length=20, verbose_name="telefone")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email")),
                (
                    "loyalty_cuts",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Cortes acumulados desde a última cortesia",
                        verbose_name="cortes de fidelidade",
                    ),
                ),
                (
                    "available_courtesies",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Cortesias ganhas e ainda não utilizadas",
                        verbose_name="cortesias disponíveis",
                    ),
                ),
                (
                    "total_courtesies_earned",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Total de cortesias já ganhas (nunca decresce)",
                        verbose_name="cortesias ganhas",
                    ),
                ),
                ("total_visits", models.PositiveIntegerField(default=0, verbose_name="total de visitas")),
                ("last_visit_at", models.DateTimeField(blank=True, null=True, verbose_name="última visita")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="ativo")),
                ("notes", models.TextField(blank=True, verbose_name="observações")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="atualizado em")),
                (
                    "unit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="clients",
                        to="barberman.unit",
                        verbose_name="unidade",
                    ),
                ),
            ],
            options={
                "verbose_name": "cliente",
                "verbose_name_plural": "clientes",
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["unit", "phone"], name="barberman_client_unit_phone"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Appointment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("client_name", models.CharField(blank=True, max_length=200, verbose_name="nome do cliente")),
                ("client_phone", models.CharField(blank=True, max_length=20, verbose_name="telefone do cliente")),
                ("barber_name", models.CharField(blank=True, max_length=200, verbose_name="profissional")),
                ("service_name", models.CharField(blank=True, max_length=200, verbose_name="serviço")),
                (
                    "service_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        max_digits=10,
                        verbose_name="preço do serviço",
                    ),
                ),
                (
                    "total_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        max_digits=10,
                        verbose_name="valor cobrado",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("scheduled", "Agendado"),
                            ("confirmed", "Confirmado"),
                            ("completed", "Concluído"),
                            ("cancelled", "Cancelado"),
                            ("no_show", "Não compareceu"),
                        ],
                        db_index=True,
                        default="scheduled",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("cash", "Dinheiro"),
                            ("pix", "PIX"),
                            ("debit_card", "Cartão de débito"),
                            ("credit_card", "Cartão de crédito"),
                            ("courtesy", "Cortesia"),
                            ("fidelity_courtesy", "Cortesia de Fidelidade"),
                            ("other", "Outro"),
                        ],
                        max_length=30,
                        verbose_name="forma de pagamento",
                    ),
                ),
                ("notes", models.TextField(blank=True, verbose_name="observações")),
                ("start_time", models.DateTimeField(db_index=True, verbose_name="início")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="concluído em")),
                (
                    "loyalty_processed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Preenchido quando o atendimento é aplicado ao cartão fidelidade",
                        null=True,
                        verbose_name="contabilizado na fidelidade em",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="atualizado em")),
                (
                    "client",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="appointments",
                        to="barberman.client",
                        verbose_name="cliente",
                    ),
                ),
                (
                    "unit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="appointments",
                        to="barberman.unit",
                        verbose_name="unidade",
                    ),
                ),
            ],
            options={
                "verbose_name": "agendamento",
                "verbose_name_plural": "agendamentos",
                "ordering": ["-start_time"],
                "indexes": [
                    models.Index(fields=["unit", "status"], name="barberman_appt_unit_status"),
                    models.Index(fields=["unit", "client_phone"], name="barberman_appt_unit_phone"),
                ],
            },
        ),
        migrations.CreateModel(
            name="FidelityEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "entry_type",
                    models.CharField(
                        choices=[
                            ("cut", "Corte"),
                            ("earn", "Cortesia ganha"),
                            ("redeem", "Cortesia utilizada"),
                            ("sync", "Sincronização"),
                        ],
                        max_length=20,
                        verbose_name="tipo",
                    ),
                ),
                (
                    "courtesies_delta",
                    models.IntegerField(
                        default=0,
                        help_text="Positivo para ganho, negativo para uso",
                        verbose_name="variação de cortesias",
                    ),
                ),
                ("loyalty_cuts_after", models.PositiveIntegerField(verbose_name="cortes após")),
                ("available_after", models.PositiveIntegerField(verbose_name="cortesias disponíveis após")),
                ("description", models.CharField(max_length=200, verbose_name="descrição")),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        help_text="ID externo (ex: appointment:123)",
                        max_length=100,
                        verbose_name="referência",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="criado em")),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="criado por")),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="fidelity_entries",
                        to="barberman.client",
                        verbose_name="cliente",
                    ),
                ),
            ],
            options={
                "verbose_name": "lançamento de fidelidade",
                "verbose_name_plural": "lançamentos de fidelidade",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["client", "-created_at"], name="barberman_entry_client_date"),
                ],
            },
        ),
    ]
