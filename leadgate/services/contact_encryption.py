"""
Lead contact encryption.

Contacts are stored as a versioned envelope: {"version": 1, "payload": <fernet token>}.
Rows written before encryption hold the bare dict and are returned untouched.
"""
import json
import logging
from typing import Optional, Union

from leadgate.utils.encryption import encrypt_value, decrypt_value, DecryptionError

logger = logging.getLogger(__name__)

CURRENT_VERSION = 1


def encrypt_contacts(contacts: Optional[dict]) -> Optional[dict]:
    if not contacts:
        return None

    try:
        serialized = json.dumps(contacts, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.warning("Failed to serialize contacts payload: %s", str(e))
        return None

    return {
        "version": CURRENT_VERSION,
        "payload": encrypt_value(serialized),
    }


def decrypt_contacts(value: Union[dict, str, None]) -> Optional[dict]:
    if value is None:
        return None

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None

    # Legacy value without the envelope
    if not isinstance(value, dict) or "payload" not in value:
        return value

    try:
        return json.loads(decrypt_value(value["payload"]))
    except (DecryptionError, ValueError) as e:
        logger.warning("Failed to decrypt lead contacts: %s", str(e))
        return None
