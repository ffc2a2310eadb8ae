"""Unit service - locations and their fidelity program settings."""

import logging
from decimal import Decimal, InvalidOperation

from barberman.exceptions import BarbermanError
from barberman.models import Unit
from barberman.rules import FidelityConfig

logger = logging.getLogger(__name__)


def get(code: str) -> Unit | None:
    """Get active unit by code."""
    try:
        return Unit.objects.get(code=code, is_active=True)
    except Unit.DoesNotExist:
        return None


def require(code: str) -> Unit:
    """Get active unit by code or raise UNIT_NOT_CONFIGURED."""
    unit = get(code)
    if unit is None:
        raise BarbermanError("UNIT_NOT_CONFIGURED", unit_code=code)
    return unit


def get_fidelity_config(code: str) -> FidelityConfig:
    """Fidelity settings of a unit."""
    return require(code).fidelity_config


def update_fidelity_settings(
    code: str,
    enabled: bool | None = None,
    cuts_threshold: int | None = None,
    min_value: Decimal | str | None = None,
) -> Unit:
    """
    Update a unit's fidelity program settings.

    Only the arguments given are changed. The resulting configuration is
    validated before anything is written.

    Raises:
        BarbermanError: UNIT_NOT_CONFIGURED or INVALID_FIDELITY_CONFIG
    """
    unit = require(code)

    if enabled is not None:
        unit.fidelity_program_enabled = bool(enabled)
    if cuts_threshold is not None:
        try:
            unit.fidelity_cuts_threshold = int(cuts_threshold)
        except (TypeError, ValueError):
            raise BarbermanError(
                "INVALID_FIDELITY_CONFIG",
                message="Cuts threshold must be an integer",
                cuts_threshold=str(cuts_threshold),
            )
    if min_value is not None:
        try:
            unit.fidelity_min_value = Decimal(str(min_value))
        except InvalidOperation:
            raise BarbermanError(
                "INVALID_FIDELITY_CONFIG",
                message="Minimum qualifying value must be a number",
                min_value=str(min_value),
            )

    # Raises INVALID_FIDELITY_CONFIG on bad values
    unit.fidelity_config

    unit.save(
        update_fields=[
            "fidelity_program_enabled",
            "fidelity_cuts_threshold",
            "fidelity_min_value",
            "updated_at",
        ]
    )
    logger.info(
        "Fidelity settings for unit %s: enabled=%s threshold=%s min=%s",
        unit.code,
        unit.fidelity_program_enabled,
        unit.fidelity_cuts_threshold,
        unit.fidelity_min_value,
    )
    return unit
