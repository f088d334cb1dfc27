"""
Encryption primitives for the PII vault.

This module provides identity-bound key derivation, the AES-GCM engine
and the result values returned when decrypting.
"""

from .cipher_engine import CipherEngine, CipherQuadruplet, Encoding, sniff_encoding
from .integrity import generate_data_hash, verify_data_integrity
from .key_deriver import derive_key
from .results import DecryptFailure, DecryptOk, DecryptResult, FailureReason

__all__ = [
    "CipherEngine",
    "CipherQuadruplet",
    "Encoding",
    "sniff_encoding",
    "derive_key",
    "generate_data_hash",
    "verify_data_integrity",
    "DecryptFailure",
    "DecryptOk",
    "DecryptResult",
    "FailureReason",
]
