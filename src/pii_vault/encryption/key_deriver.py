"""
Identity-bound key derivation.

Keys are derived from the subject's email address and a per-value salt.
No server-side secret is mixed in, so the same email and salt always give
back the same key, which is what makes later decryption possible.
"""

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..errors import VaultLogicError


# Stored ciphertext depends on these values; changing any of them makes
# existing data undecryptable.
KDF_ITERATIONS = 100_000
KEY_LENGTH = 32
SALT_LENGTH = 16


def derive_key(identity: str, salt: bytes) -> bytes:
    """
    Derive an AES-256 key for an identity.

    This uses PBKDF2-HMAC-SHA256 with a fixed iteration count. The result
    is recomputed on every call; nothing is cached.

    Args:
        identity: The subject identity (account email), used byte-for-byte
        salt: The 16-byte salt stored alongside the ciphertext

    Returns:
        The 32-byte derived key

    Raises:
        VaultLogicError: If the identity is not a string or the salt has
            the wrong length
    """
    if not isinstance(identity, str):
        raise VaultLogicError(f"Identity must be a string, got {type(identity).__name__}")
    if not isinstance(salt, (bytes, bytearray)) or len(salt) != SALT_LENGTH:
        raise VaultLogicError(f"Salt must be exactly {SALT_LENGTH} bytes")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=bytes(salt),
        iterations=KDF_ITERATIONS,
        backend=default_backend(),
    )
    return kdf.derive(identity.encode("utf-8"))
