"""
Address model shared by every storage generation.

Whether an address row was decrypted from a payload blob or rebuilt from
legacy plaintext columns, callers receive this model so the shape they
see never depends on how the row was stored.
"""

from collections.abc import Mapping
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class AddressPayload(BaseModel):
    """A decrypted address with its non-sensitive row metadata."""

    # Field names follow the stored camelCase schema. Numbers written by
    # older clients (postal codes, phones) are read back as strings.
    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True, extra="ignore")

    # Row metadata, never encrypted
    id: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    label: str = ""
    nickname: Optional[str] = None
    type: str = "shipping"
    street: str = ""
    city: str = ""
    state: Optional[str] = None
    postalCode: str = ""
    country: str = ""
    reference: Optional[str] = None
    additionalInfo: Optional[str] = None
    isDefault: Optional[bool] = None

    # Added after the first schema; older rows never carried them
    contactPhone: str = ""
    isWhatsapp: bool = False

    @model_validator(mode="before")
    @classmethod
    def _null_means_default(cls, data: object) -> object:
        # A stored null on a non-optional field reads as the field default
        if not isinstance(data, Mapping):
            return data
        return {
            key: value
            for key, value in data.items()
            if value is not None or key not in cls.model_fields or cls.model_fields[key].default is None
        }

    @field_validator("id", "createdAt", "updatedAt", mode="before")
    @classmethod
    def _stringify_metadata(cls, value: object) -> object:
        # Database drivers hand back UUID and datetime objects
        if hasattr(value, "isoformat"):
            return value.isoformat()
        if value is not None and not isinstance(value, str):
            return str(value)
        return value
