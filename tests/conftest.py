"""
Pytest configuration for PII vault tests.
"""

import os
from typing import Dict, Generator, Optional

import pytest

from pii_vault.config import VaultConfig
from pii_vault.encryption import CipherEngine


ENV_KEYS = ["PII_VAULT_MODE", "PII_VAULT_LOG_LEVEL", "PII_VAULT_MAX_WORKERS"]


@pytest.fixture(autouse=True)
def clean_vault_env() -> Generator[None, None, None]:
    """
    Run every test against default configuration.

    Vault environment variables are removed for the duration of the test
    and restored afterward, and the configuration is re-initialized.
    """
    original: Dict[str, Optional[str]] = {key: os.environ.pop(key, None) for key in ENV_KEYS}
    VaultConfig.initialize()

    yield

    for key, value in original.items():
        if value is not None:
            os.environ[key] = value
        else:
            os.environ.pop(key, None)
    VaultConfig.initialize()


@pytest.fixture
def identity() -> str:
    """The account email used as the key-derivation input."""
    return "a@b.com"


@pytest.fixture
def engine() -> CipherEngine:
    """A cipher engine instance."""
    return CipherEngine()


@pytest.fixture
def address_input() -> Dict[str, object]:
    """
    Provide a complete address as entered by a customer.

    Every field is populated so the legacy and encrypted representations
    can be compared field for field.
    """
    return {
        "label": "Home",
        "nickname": "Home",
        "type": "shipping",
        "street": "Main St",
        "city": "Springfield",
        "state": "IL",
        "postalCode": "62701",
        "country": "US",
        "reference": "Blue door",
        "additionalInfo": "Ring twice",
        "isDefault": True,
    }
