"""Billing identifier generation."""

import secrets
import string

_ALPHABET = string.ascii_uppercase + string.digits


def generate_bill_id(prefix: str = "UPKYPBILL", length: int = 6) -> str:
    """Generate a candidate billing id, e.g. "UPKYPBILL7Q2K9D".

    Uniqueness is not guaranteed here; the storage layer's unique constraint
    decides and the caller regenerates on conflict.
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(length))
    return f"{prefix}{suffix}"


__all__ = ["generate_bill_id"]
