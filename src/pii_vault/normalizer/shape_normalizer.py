"""
Storage shape normalization.

Encrypted values have been stored three different ways over the life of
the schema:

* a bare plaintext string (rows written before encryption existed),
* a single JSON blob ``{"encrypted", "iv", "tag", "salt", "encoding"?}``,
* four separate columns, named either in snake_case (``payload_iv``) or
  camelCase (``payloadIv``).

This module classifies a raw stored value into exactly one of the shapes
below, then recovers the plaintext from that shape. Classification is pure;
only ``ShapeNormalizer.recover`` touches the cipher engine. Nothing here
raises for unexpected data: an unrecognised shape is an ordinary outcome.
"""

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple, Union

from ..encryption.cipher_engine import HEX_PATTERN, CipherEngine, CipherQuadruplet, Encoding, sniff_encoding
from ..encryption.results import DecryptFailure, DecryptOk, DecryptResult, FailureReason


logger = logging.getLogger(__name__)

NAME_FIELDS = ("firstName", "lastName", "phone")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass(frozen=True)
class ColumnLayout:
    """Names of the four physical columns holding one encrypted value."""

    ciphertext: str
    iv: str
    tag: str
    salt: str

    def keys(self) -> Tuple[str, str, str, str]:
        return (self.ciphertext, self.iv, self.tag, self.salt)


# The JSON blob stores its components under fixed keys.
BLOB_LAYOUT = ColumnLayout("encrypted", "iv", "tag", "salt")


@dataclass(frozen=True)
class Plaintext:
    """A value stored without encryption."""

    value: str


@dataclass(frozen=True)
class JsonBlob:
    """A quadruplet serialized as one JSON object."""

    quadruplet: CipherQuadruplet


@dataclass(frozen=True)
class Columns:
    """A quadruplet spread across four columns of a row."""

    quadruplet: CipherQuadruplet
    layout: ColumnLayout


@dataclass(frozen=True)
class NoShape:
    """Nothing recoverable was found."""

    reason: str


Shape = Union[Plaintext, JsonBlob, Columns, NoShape]


def to_snake_case(name: str) -> str:
    """Convert ``firstName`` to ``first_name``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def layouts_for(field: str, cipher_key: Optional[str] = None) -> Tuple[ColumnLayout, ColumnLayout]:
    """
    Build the candidate column layouts for a logical field.

    Per-field columns keep the ciphertext under ``{field}Encrypted``; the
    address payload keeps it under the bare ``payload`` column, which is
    what ``cipher_key`` is for.

    Args:
        field: The logical field name, in camelCase
        cipher_key: Column holding the ciphertext, if not the default

    Returns:
        The snake_case layout followed by the camelCase layout
    """
    snake = to_snake_case(field)
    return (
        ColumnLayout(cipher_key or f"{snake}_encrypted", f"{snake}_iv", f"{snake}_tag", f"{snake}_salt"),
        ColumnLayout(cipher_key or f"{field}Encrypted", f"{field}Iv", f"{field}Tag", f"{field}Salt"),
    )


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _resolve_encoding(ciphertext: str, declared: Any) -> Encoding:
    declared = _text(declared).lower()
    if declared in (Encoding.HEX.value, Encoding.BASE64.value):
        return Encoding(declared)
    return sniff_encoding(ciphertext)


def _quadruplet_from(source: Mapping, layout: ColumnLayout) -> Optional[CipherQuadruplet]:
    parts = [_text(source.get(key)) for key in layout.keys()]
    if not all(parts):
        return None
    ciphertext, iv, tag, salt = parts
    return CipherQuadruplet(
        ciphertext=ciphertext,
        iv=iv,
        tag=tag,
        salt=salt,
        encoding=_resolve_encoding(ciphertext, source.get("encoding")),
    )


def _classify_mapping(data: Mapping) -> Shape:
    plaintext = _text(data.get("plaintext"))
    if plaintext:
        return Plaintext(plaintext)

    quadruplet = _quadruplet_from(data, BLOB_LAYOUT)
    if quadruplet is not None:
        return JsonBlob(quadruplet)

    return NoShape("object carries no complete cipher components")


def classify(raw: Any) -> Shape:
    """
    Classify a single stored value.

    Strings that do not look like JSON are plaintext. Strings that look
    like JSON but fail to parse are also plaintext, so a malformed legacy
    value is shown rather than lost.

    Args:
        raw: A string, a mapping, or None

    Returns:
        The shape of the value
    """
    if raw is None:
        return NoShape("no value")

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return NoShape("blank value")
        if not text.startswith("{"):
            return Plaintext(text)
        try:
            parsed = json.loads(text)
        except (ValueError, RecursionError):
            return Plaintext(text)
        if not isinstance(parsed, dict):
            return NoShape("JSON value is not an object")
        return _classify_mapping(parsed)

    if isinstance(raw, Mapping):
        return _classify_mapping(raw)

    return NoShape(f"unsupported value type {type(raw).__name__}")


def classify_columns(row: Any, field: str, cipher_key: Optional[str] = None) -> Shape:
    """
    Find an encrypted value for a field among a row's columns.

    A JSON object sitting in the ciphertext column wins; otherwise the
    snake_case columns are probed, then the camelCase ones, and the first
    complete set is used. Plain scalars under the logical name are not
    considered here.

    Args:
        row: The stored row
        field: The logical field name
        cipher_key: Column holding the ciphertext, if not the default

    Returns:
        ``JsonBlob``, ``Columns``, ``Plaintext`` (explicit escape hatch
        inside a blob) or ``NoShape``
    """
    if not isinstance(row, Mapping):
        return NoShape("row is not a mapping")

    layouts = layouts_for(field, cipher_key)

    seen = set()
    for layout in layouts:
        if layout.ciphertext in seen:
            continue
        seen.add(layout.ciphertext)
        value = row.get(layout.ciphertext)
        if isinstance(value, str) and _text(value).startswith("{"):
            try:
                value = json.loads(_text(value))
            except (ValueError, RecursionError):
                continue
        if not isinstance(value, Mapping):
            continue
        shape = _classify_mapping(value)
        if not isinstance(shape, NoShape):
            return shape

    for layout in layouts:
        quadruplet = _quadruplet_from(row, layout)
        if quadruplet is not None:
            return Columns(quadruplet, layout)

    return NoShape(f"no complete column set for {field}")


def classify_field(row: Any, field: str) -> Shape:
    """
    Classify a user-record field, accepting every historical layout.

    The plain scalar under the logical name is consulted first, then the
    encrypted columns, and finally a plaintext value that an early writer
    left in the ``Encrypted`` column without companion columns.

    Args:
        row: The stored user row
        field: The logical field name

    Returns:
        The shape of the field's value
    """
    if not isinstance(row, Mapping):
        return NoShape("row is not a mapping")

    if _text(row.get(field)):
        return classify(row.get(field))

    shape = classify_columns(row, field)
    if not isinstance(shape, NoShape):
        return shape

    for layout in layouts_for(field):
        raw = _text(row.get(layout.ciphertext))
        if not raw:
            continue
        if raw.startswith("{"):
            return classify(raw)
        has_companions = any(_text(row.get(key)) for key in (layout.iv, layout.tag, layout.salt))
        if not has_companions and not HEX_PATTERN.match(raw):
            return Plaintext(raw)

    return NoShape(f"no value stored for {field}")


class ShapeNormalizer:
    """
    Recovers plaintext from any historical storage shape.

    Every public method returns a value; unrecognised shapes, malformed
    JSON and failed decryption are all reported as failures or ``None``.
    """

    def __init__(self, engine: Optional[CipherEngine] = None) -> None:
        """
        Initialize the normalizer.

        Args:
            engine: Optional cipher engine, mainly for tests
        """
        self.engine = engine or CipherEngine()

    classify = staticmethod(classify)
    classify_columns = staticmethod(classify_columns)
    classify_field = staticmethod(classify_field)

    def recover(self, identity: Optional[str], shape: Shape) -> DecryptResult:
        """
        Recover the plaintext held by a classified shape.

        Args:
            identity: The subject identity
            shape: The result of one of the classify functions

        Returns:
            ``DecryptOk`` or ``DecryptFailure``
        """
        if isinstance(shape, Plaintext):
            return DecryptOk(shape.value)
        if isinstance(shape, (JsonBlob, Columns)):
            return self.engine.decrypt(identity, shape.quadruplet)
        reason = shape.reason if isinstance(shape, NoShape) else "unknown shape"
        logger.debug("no recoverable shape: %s", reason)
        return DecryptFailure(FailureReason.NO_SHAPE, reason)

    def decrypt_value(self, identity: Optional[str], raw: Any) -> Optional[str]:
        """
        Recover a single stored value.

        Args:
            identity: The subject identity
            raw: A plaintext string, JSON blob string or blob mapping

        Returns:
            The plaintext, or None if it cannot be recovered
        """
        return self.recover(identity, classify(raw)).unwrap_or(None)

    def resolve_field(self, identity: Optional[str], row: Any, field: str) -> Optional[str]:
        """
        Recover a user-record field from whichever layout the row uses.

        Args:
            identity: The subject identity
            row: The stored user row
            field: The logical field name

        Returns:
            The plaintext, or None if it cannot be recovered
        """
        return self.recover(identity, classify_field(row, field)).unwrap_or(None)

    def with_decrypted_names(
        self,
        row: Optional[Mapping],
        fields: Iterable[str] = NAME_FIELDS,
    ) -> Optional[dict]:
        """
        Copy a user row with its name fields resolved to plaintext.

        The row's own ``email`` is the identity. Names that cannot be
        recovered are set to None rather than left holding stale values.

        Args:
            row: The stored user row, or None
            fields: Logical fields to resolve

        Returns:
            A new dictionary, or None if no row was given
        """
        if row is None:
            return None

        identity = row.get("email")
        result = dict(row)
        for field in fields:
            result[field] = self.resolve_field(identity, row, field)
        return result
