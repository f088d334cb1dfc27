"""Content hashes for checking that a value survived storage unchanged."""

import hashlib
import hmac


def generate_data_hash(data: str) -> str:
    """Return the SHA-256 hex digest of a UTF-8 string."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def verify_data_integrity(data: str, expected_hash: str) -> bool:
    """
    Check a string against a hash produced by ``generate_data_hash``.

    Args:
        data: The value to check
        expected_hash: The hex digest recorded earlier

    Returns:
        True if the digests match
    """
    if not isinstance(expected_hash, str):
        return False
    return hmac.compare_digest(generate_data_hash(data), expected_hash.strip().lower())
