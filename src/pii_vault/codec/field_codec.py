"""
Per-field encryption of user records.

Each sensitive field of a record is stored as four columns,
``{field}Encrypted``, ``{field}Iv``, ``{field}Tag`` and ``{field}Salt``.
This module converts between a record carrying plaintext under the
logical field names and one carrying those columns.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional

from ..encryption.cipher_engine import CipherEngine, CipherQuadruplet
from ..errors import VaultLogicError
from ..normalizer.shape_normalizer import NoShape, ShapeNormalizer, classify_columns, layouts_for


logger = logging.getLogger(__name__)

# Fields written encrypted by the account writer
USER_ENCRYPTED_FIELDS = ("firstName", "lastName", "phone")

# Fields read back; older rows also carried encrypted address lines
USER_DECRYPTED_FIELDS = ("firstName", "lastName", "phone", "street", "city", "state")

_SNAKE_CIPHER_COLUMN = re.compile(r"^(.*)_(encrypted|iv|tag|salt)$")
_SUFFIXES = {"encrypted": "Encrypted", "iv": "Iv", "tag": "Tag", "salt": "Salt"}


def _camelize(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def map_encrypted_columns(record: Mapping) -> Dict[str, Any]:
    """
    Rename snake_case cipher columns to the camelCase schema names.

    ``first_name_iv`` becomes ``firstNameIv``; keys that are not cipher
    columns are copied unchanged.

    Args:
        record: A record possibly carrying snake_case cipher columns

    Returns:
        A new dictionary using camelCase cipher column names
    """
    mapped: Dict[str, Any] = {}
    for key, value in record.items():
        match = _SNAKE_CIPHER_COLUMN.match(key) if isinstance(key, str) else None
        if match:
            field, suffix = match.groups()
            mapped[f"{_camelize(field)}{_SUFFIXES[suffix]}"] = value
        else:
            mapped[key] = value
    return mapped


def field_columns(field: str, quadruplet: Optional[CipherQuadruplet]) -> Dict[str, Optional[str]]:
    """
    Build the four storage columns for a field.

    Args:
        field: The logical field name
        quadruplet: The encrypted value, or None to clear the field

    Returns:
        Mapping of the camelCase column names to their values
    """
    layout = layouts_for(field)[1]
    if quadruplet is None:
        return {key: None for key in layout.keys()}
    return {
        layout.ciphertext: quadruplet.ciphertext,
        layout.iv: quadruplet.iv,
        layout.tag: quadruplet.tag,
        layout.salt: quadruplet.salt,
    }


class FieldCodec:
    """
    Encrypts and decrypts the named sensitive fields of a record.

    Partial updates are supported on the write path: a field missing from
    the input is left alone, while a field present but empty is cleared.
    On the read path, a field with nothing stored is removed from the
    output so stale values never survive.
    """

    def __init__(self, engine: Optional[CipherEngine] = None) -> None:
        """
        Initialize the codec.

        Args:
            engine: Optional cipher engine shared with the normalizer
        """
        self.engine = engine or CipherEngine()
        self.normalizer = ShapeNormalizer(self.engine)

    def encrypt_fields(
        self,
        identity: str,
        record: Mapping,
        field_names: Iterable[str] = USER_ENCRYPTED_FIELDS,
    ) -> Dict[str, Any]:
        """
        Replace sensitive fields with their encrypted columns.

        Args:
            identity: The subject identity (account email)
            record: The record holding plaintext values
            field_names: The logical fields to encrypt

        Returns:
            A new record. Non-sensitive keys are copied through; each
            sensitive key present in the input is replaced by four columns.

        Raises:
            VaultLogicError: If a sensitive value is not a string
        """
        sensitive = set(field_names)
        result: Dict[str, Any] = {}

        for key, value in record.items():
            if key not in sensitive:
                result[key] = value
                continue

            if value is None or (isinstance(value, str) and not value.strip()):
                # Present but empty: an explicit clear
                result.update(field_columns(key, None))
            elif isinstance(value, str):
                result.update(field_columns(key, self.engine.encrypt(identity, value)))
            else:
                raise VaultLogicError(
                    f"Sensitive field {key} must be a string, got {type(value).__name__}"
                )

        return result

    def decrypt_fields(
        self,
        identity: Optional[str],
        record: Mapping,
        field_names: Iterable[str] = USER_DECRYPTED_FIELDS,
        into: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Expose sensitive fields as plaintext under their logical names.

        For each field a complete set of cipher columns is decrypted (None
        if decryption fails). Failing that, a plain scalar under the logical
        name is kept. If neither exists the logical key is removed.

        Args:
            identity: The identity used at encryption time
            record: The stored row
            field_names: The logical fields to decrypt
            into: Optional existing dictionary (e.g. a cached profile) to
                update in place instead of copying the row

        Returns:
            The decrypted record
        """
        if into is None:
            result: Dict[str, Any] = dict(record)
        else:
            result = into
            result.update(record)

        for field in field_names:
            shape = classify_columns(record, field)
            if not isinstance(shape, NoShape):
                outcome = self.normalizer.recover(identity, shape)
                if not outcome.ok:
                    logger.debug("field %s could not be decrypted: %s", field, outcome.reason.value)
                result[field] = outcome.unwrap_or(None)
            elif field in record:
                result[field] = record[field]
            else:
                result.pop(field, None)

        return result
