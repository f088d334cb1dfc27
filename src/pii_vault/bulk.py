"""
Parallel decryption across many records.

Every vault read is independent and side-effect free, but each field costs
a full PBKDF2 derivation. Resolving names for a page of orders is therefore
spread over a thread pool.
"""

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from .codec.field_codec import USER_DECRYPTED_FIELDS, FieldCodec
from .config import VaultConfig
from .normalizer.shape_normalizer import NAME_FIELDS, ShapeNormalizer


logger = logging.getLogger(__name__)

R = TypeVar("R")


def resolve_many(
    rows: Iterable[Any],
    fn: Callable[[Any], R],
    max_workers: Optional[int] = None,
) -> List[R]:
    """
    Apply a per-row function across rows in a thread pool.

    Args:
        rows: The inputs
        fn: A function with no shared state
        max_workers: Worker cap; defaults to ``bulk.max_workers``

    Returns:
        Results in input order
    """
    items: Sequence[Any] = list(rows)
    if not items:
        return []

    workers = min(len(items), max_workers or VaultConfig.get_max_workers())
    if workers == 1:
        return [fn(item) for item in items]

    logger.debug("resolving %d rows on %d workers", len(items), workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(fn, items))


def decrypt_records(
    rows: Iterable[Mapping],
    field_names: Iterable[str] = USER_DECRYPTED_FIELDS,
    identity_key: str = "email",
    codec: Optional[FieldCodec] = None,
    max_workers: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Decrypt the sensitive fields of many user rows.

    Each row supplies its own identity under ``identity_key``.

    Args:
        rows: Stored user rows
        field_names: The logical fields to decrypt
        identity_key: Row key holding the identity
        codec: Optional field codec
        max_workers: Worker cap

    Returns:
        Decrypted rows in input order
    """
    codec = codec or FieldCodec()
    fields = tuple(field_names)

    def _decrypt(row: Mapping) -> Dict[str, Any]:
        return codec.decrypt_fields(row.get(identity_key), row, fields)

    return resolve_many(rows, _decrypt, max_workers)


def with_decrypted_names_many(
    rows: Iterable[Optional[Mapping]],
    fields: Iterable[str] = NAME_FIELDS,
    normalizer: Optional[ShapeNormalizer] = None,
    max_workers: Optional[int] = None,
) -> List[Optional[Dict[str, Any]]]:
    """Resolve display names for many user rows, keeping input order."""
    normalizer = normalizer or ShapeNormalizer()
    fields = tuple(fields)
    return resolve_many(rows, lambda row: normalizer.with_decrypted_names(row, fields), max_workers)
