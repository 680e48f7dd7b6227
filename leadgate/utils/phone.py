"""
Phone number normalization to E.164.

National formats are parsed with the phonenumbers library against the
configured default region (8 (999) 123-45-67 -> +79991234567). Anything
phonenumbers cannot place is still accepted if it is a syntactically valid
E.164 string, matching what the lead form has always allowed.
"""
import logging
import re
from typing import Optional

import phonenumbers

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s\-().]")
_E164 = re.compile(r"^\+?[1-9]\d{1,14}$")


def normalize_phone_e164(phone: Optional[str], default_region: str = "RU") -> Optional[str]:
    """
    Normalize a phone number to E.164 format.

    Handles:
    - +7 999 123-45-67   -> +79991234567
    - 8 (999) 123-45-67  -> +79991234567 (region RU)
    - 79991234567        -> +79991234567

    Returns None if the value is not a phone number at all.
    """
    if not phone or not phone.strip():
        return None

    cleaned = phone.strip()

    try:
        parsed = phonenumbers.parse(cleaned, default_region)
        if phonenumbers.is_possible_number(parsed):
            return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
    except phonenumbers.NumberParseException:
        pass

    compact = _SEPARATORS.sub("", cleaned)
    if not _E164.match(compact):
        return None
    return compact if compact.startswith("+") else f"+{compact}"
