"""Barberman exceptions."""


class BaseError(Exception):
    """
    Structured exception with a stable code and optional context data.

    Subclasses declare ``_default_messages`` so callers only pass the code.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }


class BarbermanError(BaseError):
    """
    Structured exception for client and fidelity operations.

    Usage:
        try:
            FidelityService.consume_courtesy("CLI-001")
        except BarbermanError as e:
            if e.code == "INSUFFICIENT_COURTESIES":
                show_message(e.message)
    """

    _default_messages = {
        "CLIENT_NOT_FOUND": "Client not found",
        "UNIT_NOT_CONFIGURED": "Unit not found or not configured",
        "INVALID_FIDELITY_CONFIG": "Invalid fidelity program configuration",
        "FIDELITY_PROGRAM_DISABLED": "Fidelity program is not enabled for this unit",
        "INSUFFICIENT_COURTESIES": "Client has no courtesies available",
        "APPOINTMENT_NOT_FOUND": "Appointment not found",
        "APPOINTMENT_NOT_COMPLETABLE": "Appointment cannot be completed",
        "APPOINTMENT_CLIENT_MISMATCH": "Appointment does not belong to this client",
        "APPOINTMENT_ALREADY_PROCESSED": "Appointment already counted for fidelity",
        "COURTESY_REASON_REQUIRED": "A reason is required for courtesy services",
        "COURTESY_REASON_TOO_LONG": "Courtesy reason is too long",
    }
