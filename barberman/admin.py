"""Barberman admin."""

from django.contrib import admin, messages
from django.utils.html import format_html

from barberman.exceptions import BarbermanError
from barberman.models import Appointment, Client, FidelityEntry, Unit
from barberman.services.fidelity import FidelityService


# ===========================================
# Unit Admin
# ===========================================


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = [
        "code",
        "name",
        "fidelity_program_enabled",
        "fidelity_cuts_threshold",
        "fidelity_min_value",
        "client_count",
        "is_active",
    ]
    list_filter = ["fidelity_program_enabled", "is_active"]
    search_fields = ["code", "name"]
    readonly_fields = ["created_at", "updated_at"]
    actions = ["sync_fidelity"]

    fieldsets = [
        ("Identificação", {"fields": ["code", "name", "is_active"]}),
        (
            "Programa de Fidelidade",
            {
                "fields": [
                    "fidelity_program_enabled",
                    "fidelity_cuts_threshold",
                    "fidelity_min_value",
                ]
            },
        ),
        (
            "Sistema",
            {
                "fields": ["metadata", "created_at", "updated_at"],
                "classes": ["collapse"],
            },
        ),
    ]

    def client_count(self, obj):
        return obj.clients.count()

    client_count.short_description = "Clientes"

    @admin.action(description="Sincronizar fidelidade de todos os clientes")
    def sync_fidelity(self, request, queryset):
        for unit in queryset:
            try:
                summary = FidelityService.recalculate_unit(
                    unit.code, created_by=request.user.get_username()
                )
            except BarbermanError as e:
                self.message_user(request, f"{unit.name}: {e.message}", messages.WARNING)
                continue
            self.message_user(
                request,
                f"{unit.name}: {summary.processed} clientes processados, "
                f"{summary.updated} atualizados, {len(summary.failed)} com erro",
            )


# ===========================================
# Client Admin
# ===========================================


class FidelityEntryInline(admin.TabularInline):
    model = FidelityEntry
    extra = 0
    fields = [
        "entry_type",
        "courtesies_delta",
        "loyalty_cuts_after",
        "available_after",
        "description",
        "reference",
        "created_at",
    ]
    readonly_fields = fields
    ordering = ["-created_at"]
    max_num = 20

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = [
        "code",
        "name",
        "unit",
        "phone",
        "fidelity_progress",
        "available_courtesies",
        "total_visits",
        "last_visit_at",
        "is_active",
    ]
    list_filter = ["unit", "is_active"]
    search_fields = ["code", "name", "phone", "email"]
    readonly_fields = [
        "uuid",
        "loyalty_cuts",
        "available_courtesies",
        "total_courtesies_earned",
        "total_visits",
        "last_visit_at",
        "created_at",
        "updated_at",
    ]
    inlines = [FidelityEntryInline]
    actions = ["sync_fidelity"]

    fieldsets = [
        ("Identificação", {"fields": ["unit", "code", "uuid", "name"]}),
        ("Contato", {"fields": ["phone", "email", "notes"]}),
        (
            "Fidelidade",
            {
                "fields": [
                    "loyalty_cuts",
                    "available_courtesies",
                    "total_courtesies_earned",
                    "total_visits",
                    "last_visit_at",
                ]
            },
        ),
        (
            "Sistema",
            {
                "fields": ["is_active", "created_at", "updated_at"],
                "classes": ["collapse"],
            },
        ),
    ]

    def fidelity_progress(self, obj):
        return format_html(
            "{}/{} ({}%)",
            obj.loyalty_cuts,
            obj.unit.fidelity_cuts_threshold,
            obj.stamps_progress_percent,
        )

    fidelity_progress.short_description = "Cortes"

    @admin.action(description="Recalcular fidelidade")
    def sync_fidelity(self, request, queryset):
        updated = 0
        for client in queryset.select_related("unit"):
            try:
                FidelityService.recalculate(
                    client.code, created_by=request.user.get_username()
                )
            except BarbermanError as e:
                self.message_user(request, f"{client.name}: {e.message}", messages.WARNING)
                continue
            updated += 1
        self.message_user(request, f"Fidelidade recalculada para {updated} cliente(s).")


# ===========================================
# Appointment Admin
# ===========================================


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = [
        "start_time",
        "unit",
        "client_display",
        "barber_name",
        "service_name",
        "total_price",
        "status",
        "payment_badge",
    ]
    list_filter = ["unit", "status", "payment_method"]
    search_fields = ["client_name", "client_phone", "client__code", "barber_name", "service_name"]
    raw_id_fields = ["client"]
    readonly_fields = ["completed_at", "loyalty_processed_at", "created_at", "updated_at"]
    date_hierarchy = "start_time"

    def client_display(self, obj):
        if obj.client_id:
            return obj.client.name
        return obj.client_name or "-"

    client_display.short_description = "Cliente"

    def payment_badge(self, obj):
        if not obj.payment_method:
            return "-"
        colors = {
            "courtesy": "#ec4899",
            "fidelity_courtesy": "#22c55e",
        }
        color = colors.get(obj.payment_method, "#6c757d")
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            color,
            obj.get_payment_method_display(),
        )

    payment_badge.short_description = "Pagamento"


# ===========================================
# FidelityEntry Admin (read-only ledger)
# ===========================================


@admin.register(FidelityEntry)
class FidelityEntryAdmin(admin.ModelAdmin):
    list_display = [
        "created_at",
        "client_code",
        "entry_type",
        "delta_display",
        "loyalty_cuts_after",
        "available_after",
        "description",
    ]
    list_filter = ["entry_type"]
    search_fields = ["client__code", "client__name", "description", "reference"]
    readonly_fields = [
        "client",
        "entry_type",
        "courtesies_delta",
        "loyalty_cuts_after",
        "available_after",
        "description",
        "reference",
        "created_at",
        "created_by",
    ]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def client_code(self, obj):
        return obj.client.code

    client_code.short_description = "Cliente"

    def delta_display(self, obj):
        if obj.courtesies_delta > 0:
            return format_html('<span style="color:green">+{}</span>', obj.courtesies_delta)
        if obj.courtesies_delta < 0:
            return format_html('<span style="color:red">{}</span>', obj.courtesies_delta)
        return "0"

    delta_display.short_description = "Cortesias"
