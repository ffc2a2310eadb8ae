"""Client service - lookups and CRUD.

Fidelity counters are never written here; see services.fidelity.
"""

import logging

from django.db import transaction
from django.db.models import Q

from barberman.exceptions import BarbermanError
from barberman.models import Client, Unit
from barberman.signals import client_created, client_updated
from barberman.utils import normalize_phone

logger = logging.getLogger(__name__)


def get(code: str) -> Client | None:
    """Get active client by unique code."""
    try:
        return Client.objects.select_related("unit").get(code=code, is_active=True)
    except Client.DoesNotExist:
        return None


def require(code: str) -> Client:
    """Get active client by code or raise CLIENT_NOT_FOUND."""
    client = get(code)
    if client is None:
        raise BarbermanError("CLIENT_NOT_FOUND", client_code=code)
    return client


def get_by_phone(unit_code: str, phone: str) -> Client | None:
    """Get active client of a unit by phone (exact match on normalized digits)."""
    phone_normalized = normalize_phone(phone)
    if not phone_normalized:
        return None
    return (
        Client.objects.select_related("unit")
        .filter(unit__code=unit_code, phone=phone_normalized, is_active=True)
        .order_by("pk")
        .first()
    )


def search(unit_code: str, query: str = "", limit: int = 20) -> list[Client]:
    """Search a unit's clients by name, code, phone, or email."""
    qs = Client.objects.filter(unit__code=unit_code, is_active=True)

    if query:
        qs = qs.filter(
            Q(code__icontains=query)
            | Q(name__icontains=query)
            | Q(phone__icontains=query)
            | Q(email__icontains=query)
        )

    return list(qs.select_related("unit")[:limit])


def create(
    unit_code: str,
    code: str,
    name: str,
    phone: str = "",
    email: str = "",
    **kwargs,
) -> Client:
    """Create a new client with zeroed fidelity counters."""
    try:
        unit = Unit.objects.get(code=unit_code, is_active=True)
    except Unit.DoesNotExist:
        raise BarbermanError("UNIT_NOT_CONFIGURED", unit_code=unit_code)

    with transaction.atomic():
        client = Client.objects.create(
            unit=unit,
            code=code,
            name=name,
            phone=phone,
            email=email,
            **kwargs,
        )

    logger.info("Client %s created in unit %s", client.code, unit.code)
    client_created.send(sender=Client, client=client)
    return client


UPDATABLE_FIELDS = {
    "name",
    "phone",
    "email",
    "notes",
    "is_active",
}


def update(code: str, **fields) -> Client | None:
    """Update client fields (only whitelisted fields are accepted)."""
    client = get(code)
    if not client:
        return None

    changes = {}
    for key, value in fields.items():
        if key not in UPDATABLE_FIELDS:
            continue
        old_value = getattr(client, key)
        if old_value != value:
            changes[key] = {"old": old_value, "new": value}
        setattr(client, key, value)

    client.save()
    if changes:
        client_updated.send(sender=Client, client=client, changes=changes)
    return client
