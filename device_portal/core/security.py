"""
Password hashing & random credential helpers.

- User passwords are hashed with bcrypt directly (passlib is unmaintained
  and broken with bcrypt>=4.1).  Cost factor comes from settings (12).
- Device passwords are NOT hashed: they are generated here and stored
  in cleartext so admins can hand them out.
- Session ids are opaque URL-safe tokens, used as the bearer value.
"""

import secrets
import string

import bcrypt

from device_portal.core.config import settings
from device_portal.models.device import DEVICE_USERNAME_MAX_LENGTH

# URL-safe alphabet, same character set as token_urlsafe
_ALPHABET = string.ascii_letters + string.digits + "_-"

DEVICE_SUFFIX_LENGTH = 4
DEVICE_PASSWORD_LENGTH = 6


# ── Password hashing ────────────────────────────────────────────────


def hash_password(plain: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Check *plain* against a bcrypt hash.  Malformed hashes never match."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ── Random tokens ───────────────────────────────────────────────────


def random_string(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def generate_device_username(owner_name: str) -> str:
    """
    ``<owner>_<4 random chars>``, derived from the owner at creation time.

    Long owner names are cut so the result fits a device username column.
    """
    prefix = owner_name[: DEVICE_USERNAME_MAX_LENGTH - DEVICE_SUFFIX_LENGTH - 1]
    return f"{prefix}_{random_string(DEVICE_SUFFIX_LENGTH)}"


def generate_device_password() -> str:
    return random_string(DEVICE_PASSWORD_LENGTH)
