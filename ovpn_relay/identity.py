"""Random passphrases and certificate common names."""

import secrets
from dataclasses import dataclass

from .constants import (
    COMMON_NAME_BYTES, PASSPHRASE_ALPHABET, PASSPHRASE_LENGTH, VPN_USERNAME,
)


@dataclass(frozen=True)
class Credentials:
    """The single VPN login accepted by the check script."""

    username: str
    password: str


def generate_passphrase(length: int = PASSPHRASE_LENGTH) -> str:
    """
    Generate an alphanumeric passphrase.

    Random bytes are drawn from the OS CSPRNG and every byte outside the
    alphanumeric alphabet is discarded, so each kept character is uniform
    over the alphabet.

    Args:
        length: Number of characters

    Returns:
        The passphrase
    """
    allowed = PASSPHRASE_ALPHABET.encode("ascii")
    chars = []
    while len(chars) < length:
        for byte in secrets.token_bytes(64):
            if byte in allowed:
                chars.append(chr(byte))
                if len(chars) == length:
                    break
    return "".join(chars)


def generate_common_name(hostname: str) -> str:
    """Build a certificate common name unique to this run."""
    return f"{hostname}_{secrets.token_hex(COMMON_NAME_BYTES)}"


def generate_credentials() -> Credentials:
    """Generate the VPN login for this run."""
    return Credentials(username=VPN_USERNAME, password=generate_passphrase())
