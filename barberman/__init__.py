"""
Django Barberman - Barbershop client fidelity.

Usage:
    from barberman import FidelityService, BarbermanError

    FidelityService.apply_qualifying_event("CLI-001", appointment)
    FidelityService.check_if_next_cut_is_free("CLI-001", Decimal("40"))
    FidelityService.consume_courtesy("CLI-001", reference="appointment:42")
    FidelityService.recalculate("CLI-001")

    # Checkout
    from barberman.services import appointment
    appointment.complete(42, "fidelity_courtesy")
"""


def __getattr__(name):
    if name == "FidelityService":
        from barberman.services.fidelity import FidelityService

        return FidelityService
    if name == "BarbermanError":
        from barberman.exceptions import BarbermanError

        return BarbermanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["FidelityService", "BarbermanError"]
__version__ = "0.1.0"
