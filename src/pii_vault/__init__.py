"""
PII Vault - field-level encryption for personal data at rest.

This package encrypts names, phone numbers and addresses under keys
derived from each account's email, and reads them back from any of the
storage layouts the schema has used over time.
"""

import logging

from .config import VaultConfig
from .errors import VaultConfigError, VaultError, VaultLogicError
from .encryption import CipherEngine, CipherQuadruplet, DecryptFailure, DecryptOk, Encoding, FailureReason
from .codec import FieldCodec
from .payload import PayloadVault
from .normalizer import ShapeNormalizer
from .models import AddressPayload

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "VaultConfig",
    "VaultError",
    "VaultLogicError",
    "VaultConfigError",
    "CipherEngine",
    "CipherQuadruplet",
    "DecryptFailure",
    "DecryptOk",
    "Encoding",
    "FailureReason",
    "FieldCodec",
    "PayloadVault",
    "ShapeNormalizer",
    "AddressPayload",
]
