"""
Result values returned by the read path.

Decryption never raises for bad or foreign data. Instead it returns either
a ``DecryptOk`` carrying the plaintext or a ``DecryptFailure`` naming why
the value could not be recovered.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class FailureReason(str, Enum):
    """Why a stored value could not be recovered."""

    # No identity was supplied to derive the key from
    MISSING_IDENTITY = "missing_identity"

    # A component was not valid hex/base64 or had the wrong length
    MALFORMED_ENCODING = "malformed_encoding"

    # The GCM tag did not verify (wrong identity, tampering, corruption)
    AUTHENTICATION = "authentication"

    # The tag verified but the plaintext is not UTF-8
    INVALID_UTF8 = "invalid_utf8"

    # No recognisable storage shape was found
    NO_SHAPE = "no_shape"


@dataclass(frozen=True)
class DecryptOk:
    """A successfully recovered plaintext."""

    plaintext: str

    @property
    def ok(self) -> bool:
        return True

    def unwrap_or(self, default: object = None) -> object:
        return self.plaintext


@dataclass(frozen=True)
class DecryptFailure:
    """
    A value that could not be recovered.

    Every reason calls for the same remedy (the data is gone and may need to
    be collected again), so callers normally branch on ``ok`` alone. The
    reason and detail exist for diagnostics and never contain key material,
    identities or plaintext.
    """

    reason: FailureReason
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False

    def unwrap_or(self, default: object = None) -> object:
        return default


DecryptResult = Union[DecryptOk, DecryptFailure]
