"""
Authenticated encryption of single values.

This module provides the AES-256-GCM engine used by every other part of
the vault, along with the quadruplet type that carries the four stored
components of one encrypted value.
"""

import base64
import binascii
import json
import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..errors import VaultLogicError
from .key_deriver import SALT_LENGTH, derive_key
from .results import DecryptFailure, DecryptOk, DecryptResult, FailureReason


logger = logging.getLogger(__name__)

IV_LENGTH = 12  # 96-bit IV for GCM mode
TAG_LENGTH = 16

HEX_PATTERN = re.compile(r"^[0-9a-fA-F]+$")


class Encoding(str, Enum):
    """Text encodings used by the writers of stored components."""

    HEX = "hex"
    BASE64 = "base64"


@dataclass(frozen=True)
class CipherQuadruplet:
    """
    The stored components of one encrypted value.

    All four text components must be present for the value to be usable.
    Instances are immutable; every write produces a new quadruplet with a
    fresh salt and IV.
    """

    # Ciphertext, encoded per ``encoding``
    ciphertext: str

    # 12-byte GCM initialization vector
    iv: str

    # 16-byte GCM authentication tag
    tag: str

    # 16-byte PBKDF2 salt
    salt: str

    encoding: Encoding = Encoding.HEX

    @property
    def is_complete(self) -> bool:
        """True when all four components are non-blank strings."""
        return all(
            isinstance(part, str) and part.strip()
            for part in (self.ciphertext, self.iv, self.tag, self.salt)
        )

    def to_dict(self) -> Dict[str, str]:
        """
        Convert the quadruplet to the JSON blob layout.

        Returns:
            Dictionary with ``encrypted``, ``iv``, ``tag``, ``salt`` and
            ``encoding`` keys
        """
        return {
            "encrypted": self.ciphertext,
            "iv": self.iv,
            "tag": self.tag,
            "salt": self.salt,
            "encoding": self.encoding.value,
        }

    def to_json(self) -> str:
        """Serialize the quadruplet as a single JSON blob."""
        return json.dumps(self.to_dict())

    def with_encoding(self, encoding: Encoding) -> "CipherQuadruplet":
        """
        Re-encode all four components.

        Args:
            encoding: The target encoding

        Returns:
            A new quadruplet carrying the same bytes
        """
        if encoding == self.encoding:
            return self
        return CipherQuadruplet(
            ciphertext=_encode(_decode_ciphertext(self.ciphertext, self.encoding), encoding),
            iv=_encode(_decode_component(self.iv, IV_LENGTH), encoding),
            tag=_encode(_decode_component(self.tag, TAG_LENGTH), encoding),
            salt=_encode(_decode_component(self.salt, SALT_LENGTH), encoding),
            encoding=encoding,
        )


def sniff_encoding(ciphertext: str) -> Encoding:
    """
    Guess the encoding of a ciphertext string.

    An all-hex-digit string is taken as hex, anything else as base64.
    """
    return Encoding.HEX if HEX_PATTERN.match(ciphertext.strip()) else Encoding.BASE64


def _encode(data: bytes, encoding: Encoding) -> str:
    if encoding == Encoding.HEX:
        return data.hex()
    return base64.b64encode(data).decode("ascii")


def _decode_ciphertext(value: str, encoding: Encoding) -> bytes:
    value = value.strip()
    if encoding == Encoding.HEX:
        return bytes.fromhex(value)
    return base64.b64decode(value, validate=True)


def _decode_component(value: str, expected_length: int) -> bytes:
    # IV, tag and salt may come from either writer; hex of the exact
    # expected width is unambiguous, everything else is read as base64.
    value = value.strip()
    if HEX_PATTERN.match(value) and len(value) == expected_length * 2:
        raw = bytes.fromhex(value)
    else:
        raw = base64.b64decode(value, validate=True)
    if len(raw) != expected_length:
        raise ValueError(f"expected {expected_length} bytes, got {len(raw)}")
    return raw


class CipherEngine:
    """
    AES-256-GCM encryption bound to a subject identity.

    Each call derives its own key from the identity and a fresh random salt,
    and draws a fresh random IV. Neither can be supplied by the caller, so
    an IV is never reused under the same key.
    """

    def encrypt(self, identity: str, plaintext: str) -> CipherQuadruplet:
        """
        Encrypt a plaintext string.

        Args:
            identity: The subject identity (account email)
            plaintext: The non-empty value to protect

        Returns:
            A quadruplet with lowercase hex components

        Raises:
            VaultLogicError: If the identity or plaintext is unusable
        """
        if not isinstance(identity, str) or not identity.strip():
            raise VaultLogicError("Cannot encrypt without an identity")
        if not isinstance(plaintext, str):
            raise VaultLogicError(f"Plaintext must be a string, got {type(plaintext).__name__}")
        if not plaintext:
            raise VaultLogicError("Refusing to encrypt an empty value; clear the field instead")

        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        key = derive_key(identity, salt)

        encryptor = Cipher(
            algorithms.AES(key),
            modes.GCM(iv),
            backend=default_backend(),
        ).encryptor()
        ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()

        if len(encryptor.tag) != TAG_LENGTH:
            raise VaultLogicError(f"GCM produced a {len(encryptor.tag)}-byte tag")

        return CipherQuadruplet(
            ciphertext=ciphertext.hex(),
            iv=iv.hex(),
            tag=encryptor.tag.hex(),
            salt=salt.hex(),
            encoding=Encoding.HEX,
        )

    def decrypt(self, identity: Optional[str], quadruplet: CipherQuadruplet) -> DecryptResult:
        """
        Decrypt a quadruplet.

        This never raises for bad data. Wrong identities, tampered tags and
        undecodable components all come back as a ``DecryptFailure``.

        Args:
            identity: The identity used at encryption time, byte-for-byte
            quadruplet: The stored components

        Returns:
            ``DecryptOk`` with the plaintext, or ``DecryptFailure``
        """
        if not isinstance(identity, str) or not identity.strip():
            return self._fail(FailureReason.MISSING_IDENTITY, "no identity supplied")
        if not isinstance(quadruplet, CipherQuadruplet) or not quadruplet.is_complete:
            return self._fail(FailureReason.MALFORMED_ENCODING, "incomplete quadruplet")

        try:
            ciphertext = _decode_ciphertext(quadruplet.ciphertext, Encoding(quadruplet.encoding))
            iv = _decode_component(quadruplet.iv, IV_LENGTH)
            tag = _decode_component(quadruplet.tag, TAG_LENGTH)
            salt = _decode_component(quadruplet.salt, SALT_LENGTH)
        except (ValueError, binascii.Error) as e:
            return self._fail(FailureReason.MALFORMED_ENCODING, str(e))

        key = derive_key(identity, salt)
        decryptor = Cipher(
            algorithms.AES(key),
            modes.GCM(iv, tag),
            backend=default_backend(),
        ).decryptor()
        try:
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
        except InvalidTag:
            return self._fail(FailureReason.AUTHENTICATION, "authentication tag mismatch")

        try:
            return DecryptOk(plaintext.decode("utf-8"))
        except UnicodeDecodeError:
            return self._fail(FailureReason.INVALID_UTF8, "plaintext is not UTF-8")

    @staticmethod
    def _fail(reason: FailureReason, detail: str) -> DecryptFailure:
        logger.debug("decrypt failed: %s (%s)", reason.value, detail)
        return DecryptFailure(reason, detail)
