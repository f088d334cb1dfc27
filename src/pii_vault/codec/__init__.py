"""
Per-field encryption of user records.
"""

from .field_codec import (
    USER_DECRYPTED_FIELDS,
    USER_ENCRYPTED_FIELDS,
    FieldCodec,
    field_columns,
    map_encrypted_columns,
)

__all__ = [
    "USER_DECRYPTED_FIELDS",
    "USER_ENCRYPTED_FIELDS",
    "FieldCodec",
    "field_columns",
    "map_encrypted_columns",
]
