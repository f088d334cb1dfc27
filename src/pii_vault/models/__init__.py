"""
Data models returned by the PII vault.
"""

from .address import AddressPayload

__all__ = ["AddressPayload"]
