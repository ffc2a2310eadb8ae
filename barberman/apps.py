from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class BarbermanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "barberman"
    verbose_name = _("Barberman - Fidelidade")
