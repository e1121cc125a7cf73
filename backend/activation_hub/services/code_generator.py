"""
Activation code generator

Format: <base36 ms timestamp>-<6 random base36 chars>-<8 uuid4 hex chars>, upper-cased,
e.g. MDMNBPJX-3S0P6E-B1360C10.
"""
import secrets
import string
import time
import uuid

BASE36_ALPHABET = string.digits + string.ascii_lowercase
RANDOM_SUFFIX_LENGTH = 6
UUID_FRAGMENT_LENGTH = 8
MAX_CODE_LENGTH = 64


def to_base36(value: int) -> str:
    """Encode a non-negative integer in base 36 (lower-case digits)."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_activation_code() -> str:
    """
    Generate a new activation code.

    Uniqueness is not checked here; the storage layer rejects a duplicate
    and the caller decides what to do about it.
    """
    timestamp = to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(RANDOM_SUFFIX_LENGTH))
    fragment = uuid.uuid4().hex[:UUID_FRAGMENT_LENGTH]
    return f"{timestamp}-{suffix}-{fragment}".upper()


def normalize_code(raw: str | None) -> str:
    """Strip whitespace and upper-case a code presented by a client."""
    return (raw or "").strip().upper()


def mask_code(code: str) -> str:
    """
    Preview form for list views: first group + **** + last 4 characters.
    MDMNBPJX-3S0P6E-B1360C10 -> MDMNBPJX-****-0C10
    """
    head = code.split("-", 1)[0]
    if len(code) <= 8 or head == code:
        return f"{code[:2]}****{code[-2:]}"
    return f"{head}-****-{code[-4:]}"
