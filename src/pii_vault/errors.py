"""
Exception types for the PII vault.

Only the write path raises. Read paths report failures as values
(see ``pii_vault.encryption.results``) because foreign or historical data
is expected there.
"""


class VaultError(Exception):
    """Base class for all vault exceptions."""


class VaultLogicError(VaultError):
    """
    A programming error on the write path.

    Raised when the vault is handed input it fully controls and cannot
    legitimately encounter, such as a non-string plaintext or an empty
    identity.
    """


class VaultConfigError(VaultError):
    """A configuration value could not be interpreted."""
