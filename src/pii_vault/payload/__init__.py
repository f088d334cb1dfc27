"""
Whole-object encryption for structured payloads.
"""

from .payload_vault import (
    NON_SENSITIVE_KEYS,
    PAYLOAD_COLUMN,
    PayloadVault,
    legacy_address,
    payload_columns,
    trim_strings,
)

__all__ = [
    "NON_SENSITIVE_KEYS",
    "PAYLOAD_COLUMN",
    "PayloadVault",
    "legacy_address",
    "payload_columns",
    "trim_strings",
]
