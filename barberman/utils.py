"""Barberman helpers."""

import re


def normalize_phone(phone: str, country_code: str | None = None) -> str:
    """
    Normalize a phone number to digits with country code.

    National numbers (area code + number, 10 or 11 digits) get the
    default country code prefixed. Anything else keeps its digits.

        "(41) 99999-0001" -> "5541999990001"
        "+1 202 555 1234" -> "12025551234"
    """
    if not phone:
        return ""
    if country_code is None:
        from barberman.conf import barberman_settings

        country_code = barberman_settings.DEFAULT_COUNTRY_CODE

    explicit_international = phone.strip().startswith("+")
    digits = re.sub(r"\D", "", phone)
    if not explicit_international and len(digits) in (10, 11):
        digits = f"{country_code}{digits}"
    return digits
