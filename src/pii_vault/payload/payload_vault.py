"""
Whole-object encryption for structured payloads such as addresses.

An address is stored as one encrypted JSON blob in the ``payload`` column
plus its IV, tag and salt columns. Row metadata (id, timestamps) stays in
plaintext columns so it can still be queried, and is merged back after
decryption. Rows written before the payload existed are rebuilt from
their separate plaintext columns.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, ValidationError

from ..config import VaultConfig
from ..encryption.cipher_engine import CipherEngine, CipherQuadruplet
from ..errors import VaultLogicError
from ..models.address import AddressPayload
from ..normalizer.shape_normalizer import NoShape, ShapeNormalizer, classify_columns, layouts_for


logger = logging.getLogger(__name__)

PAYLOAD_COLUMN = "payload"

# Kept out of the blob so they remain queryable in plaintext
NON_SENSITIVE_KEYS = ("id", "createdAt", "updatedAt")


def trim_strings(value: Any) -> Any:
    """Strip leading/trailing whitespace from every string in a structure."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Mapping):
        return {key: trim_strings(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [trim_strings(item) for item in value]
    return value


def payload_columns(quadruplet: CipherQuadruplet, naming: str = "snake") -> Dict[str, str]:
    """
    Build the storage columns for an encrypted payload.

    Args:
        quadruplet: The encrypted payload
        naming: ``"snake"`` for ``payload_iv`` style, ``"camel"`` for ``payloadIv``

    Returns:
        Mapping of column names to values
    """
    if naming not in ("snake", "camel"):
        raise VaultLogicError(f"Unknown column naming: {naming}")
    snake, camel = layouts_for(PAYLOAD_COLUMN, cipher_key=PAYLOAD_COLUMN)
    layout = snake if naming == "snake" else camel
    return {
        layout.ciphertext: quadruplet.ciphertext,
        layout.iv: quadruplet.iv,
        layout.tag: quadruplet.tag,
        layout.salt: quadruplet.salt,
    }


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def legacy_address(row: Mapping) -> AddressPayload:
    """
    Rebuild an address from the plaintext columns of a pre-encryption row.

    Fields the old schema never had are filled with fixed defaults so the
    result has the same shape as a decrypted payload.

    Args:
        row: The stored address row

    Returns:
        The reconstructed address
    """
    label = _text(row.get("label")) or _text(row.get("nickname"))
    nickname = _text(row.get("nickname")) or _text(row.get("label"))
    is_default = row.get("isDefault")

    return AddressPayload(
        id=row.get("id"),
        createdAt=row.get("createdAt"),
        updatedAt=row.get("updatedAt"),
        label=label or str(VaultConfig.get("address.default_label", "Address")),
        nickname=nickname or None,
        type=_text(row.get("type")) or str(VaultConfig.get("address.default_type", "shipping")),
        street=_text(row.get("street")),
        city=_text(row.get("city")),
        state=_text(row.get("state")) or None,
        postalCode=_text(row.get("postalCode")),
        country=_text(row.get("country")),
        reference=_text(row.get("reference")) or None,
        additionalInfo=_text(row.get("additionalInfo")) or None,
        isDefault=is_default if isinstance(is_default, bool) else None,
        contactPhone="",
        isWhatsapp=False,
    )


def _validate_address(data: Dict[str, Any]) -> Optional[AddressPayload]:
    """
    Build the address model from a decrypted payload.

    Fields whose stored type does not fit the model are dropped and take
    their defaults; the rest of the payload is kept.
    """
    try:
        return AddressPayload.model_validate(data)
    except ValidationError as e:
        invalid = {error["loc"][0] for error in e.errors() if error["loc"]}

    logger.warning("Decrypted payload has %d fields of unexpected type; using defaults for them", len(invalid))
    try:
        return AddressPayload.model_validate({key: value for key, value in data.items() if key not in invalid})
    except ValidationError as e:
        logger.warning("Decrypted payload does not fit the address model: %d errors", e.error_count())
        return None


class PayloadVault:
    """
    Encrypts a structured object as a single JSON blob.

    The read path never raises: undecryptable or corrupted payloads fall
    back to the legacy plaintext columns of the row.
    """

    def __init__(
        self,
        engine: Optional[CipherEngine] = None,
        non_sensitive_keys: Iterable[str] = NON_SENSITIVE_KEYS,
    ) -> None:
        """
        Initialize the payload vault.

        Args:
            engine: Optional cipher engine
            non_sensitive_keys: Keys excluded from the blob and merged back
                from the row on read
        """
        self.engine = engine or CipherEngine()
        self.normalizer = ShapeNormalizer(self.engine)
        self.non_sensitive_keys = tuple(non_sensitive_keys)

    def encrypt_payload(self, identity: str, obj: Any) -> CipherQuadruplet:
        """
        Encrypt an object as one JSON blob.

        String values are trimmed and non-sensitive keys are dropped before
        serialization.

        Args:
            identity: The subject identity (account email)
            obj: A mapping or pydantic model

        Returns:
            The encrypted payload

        Raises:
            VaultLogicError: If the object is not a mapping or cannot be
                serialized
        """
        if isinstance(obj, BaseModel):
            obj = obj.model_dump(exclude_none=True)
        if not isinstance(obj, Mapping):
            raise VaultLogicError(f"Payload must be a mapping, got {type(obj).__name__}")

        trimmed = {
            key: value
            for key, value in trim_strings(obj).items()
            if key not in self.non_sensitive_keys
        }
        try:
            serialized = json.dumps(trimmed, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise VaultLogicError(f"Payload is not JSON serializable: {e}") from e

        return self.engine.encrypt(identity, serialized)

    def _parse(self, text: str, overrides: Optional[Mapping]) -> Optional[Dict[str, Any]]:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Encrypted payload decrypted but is not valid JSON: %s", e.msg)
            return None
        except RecursionError:
            logger.warning("Encrypted payload decrypted but is not valid JSON: nested too deeply")
            return None
        if not isinstance(parsed, dict):
            logger.warning("Encrypted payload decrypted to %s, expected an object", type(parsed).__name__)
            return None
        if overrides:
            parsed.update(overrides)
        return parsed

    def decrypt_payload(
        self,
        identity: Optional[str],
        quadruplet: CipherQuadruplet,
        non_sensitive_overrides: Optional[Mapping] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Decrypt and parse a payload blob.

        Args:
            identity: The identity used at encryption time
            quadruplet: The encrypted payload
            non_sensitive_overrides: Plaintext fields (id, timestamps) to
                merge into the result

        Returns:
            The decrypted object, or None if it cannot be decrypted or parsed
        """
        outcome = self.engine.decrypt(identity, quadruplet)
        if not outcome.ok:
            return None
        return self._parse(outcome.plaintext, non_sensitive_overrides)

    def decrypt_row(self, identity: Optional[str], row: Mapping) -> AddressPayload:
        """
        Recover the address held by a stored row.

        The encrypted payload is located in whichever layout the row uses
        (JSON blob, snake_case columns, camelCase columns). When there is
        none, or it cannot be recovered, the address is rebuilt from the
        row's legacy plaintext columns.

        Args:
            identity: The identity used at encryption time
            row: The stored address row

        Returns:
            The address, always in the same shape
        """
        shape = classify_columns(row, PAYLOAD_COLUMN, cipher_key=PAYLOAD_COLUMN)
        if not isinstance(shape, NoShape):
            outcome = self.normalizer.recover(identity, shape)
            if outcome.ok:
                overrides = {key: row.get(key) for key in self.non_sensitive_keys}
                data = self._parse(outcome.plaintext, overrides)
                if data is not None:
                    address = _validate_address(data)
                    if address is not None:
                        return address
            else:
                logger.debug("payload for row %s not recovered: %s", row.get("id"), outcome.reason.value)

        return legacy_address(row)
