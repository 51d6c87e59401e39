"""E.164 normalisation for phone-like contact links (phone, whatsapp, signal)."""

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat


class PhoneNormalizer:
    """Callable injected into ProfileService as normalize_phone.

    Numbers written without a leading + are read in default_region; with no
    default region they are rejected. Returns None for anything that is not a
    valid number, and the caller keeps the raw value.
    """

    def __init__(self, default_region: str | None = None) -> None:
        self.default_region = (default_region or "").strip().upper() or None

    def __call__(self, value: str) -> str | None:
        text = (value or "").strip()
        if not text:
            return None
        try:
            number = phonenumbers.parse(text, self.default_region)
        except NumberParseException:
            return None
        if not phonenumbers.is_valid_number(number):
            return None
        return phonenumbers.format_number(number, PhoneNumberFormat.E164)
