"""
Credential factory: hotspot usernames/passwords and payment references.

Passwords are 8 hex characters (~32 bits). Customers type them on a phone and
they only unlock a short-lived hotspot session; do not reuse this scheme for
anything longer-lived.
"""
import secrets
import string
from dataclasses import dataclass

USERNAME_PREFIX = "u_"
USERNAME_LENGTH = 8
PASSWORD_LENGTH = 8
REFERENCE_LENGTH = 10

_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class Credential:
    username: str
    password: str


def _random_token(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_username() -> str:
    return f"{USERNAME_PREFIX}{_random_token(USERNAME_LENGTH)}"


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return secrets.token_hex((length + 1) // 2)[:length]


def generate_credential() -> Credential:
    return Credential(username=generate_username(), password=generate_password())


def generate_reference() -> str:
    return _random_token(REFERENCE_LENGTH)


def is_valid_reference(value: str | None) -> bool:
    return bool(value) and 0 < len(value) <= 64 and all(c.isalnum() or c in "-_." for c in value)
