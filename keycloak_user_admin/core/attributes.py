"""Custom user attribute parsing and merging.

Keycloak stores custom attributes as ``{key: [value, ...]}`` on the user
representation. The admin update endpoint replaces the whole mapping, so
adding attributes is a read-merge-write sequence built on the helpers below.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .exceptions import AttributeParseFailed

logger = logging.getLogger(__name__)

_SCALARS = (str, int, float, bool)


def normalize_values(value: Any) -> Tuple[str, ...]:
    """Normalize an attribute value into a tuple of strings.

    A bare scalar becomes a one-element tuple and None items are skipped.

    Raises:
        ValueError: If the value or one of its items is not a scalar
    """
    if value is None:
        return ()
    if isinstance(value, _SCALARS):
        return (str(value),)
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"attribute value is {type(value).__name__}, not a list")

    values = []
    for item in value:
        if item is None:
            continue
        if not isinstance(item, _SCALARS):
            raise ValueError(f"attribute value item is {type(item).__name__}, not a scalar")
        values.append(str(item))
    return tuple(values)


@dataclass(frozen=True)
class Attribute:
    """One custom attribute: a key holding an ordered sequence of values.

    ``value`` accepts a string or a list and is stored as a tuple of strings.
    """
    key: str
    value: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "value", normalize_values(self.value))


def merge_attributes(
    existing: Optional[Iterable[Attribute]],
    incoming: Iterable[Attribute],
) -> Dict[str, List[str]]:
    """Upsert ``incoming`` attributes over ``existing`` ones.

    A key present in both takes the incoming value list as a whole; values
    are never appended. Keys keep the position of their first occurrence.

    Args:
        existing: Attributes already stored on the user (None means none)
        incoming: Attributes to apply, in order

    Returns:
        Mapping of attribute key to value list
    """
    merged: Dict[str, List[str]] = {}
    for attribute in existing or ():
        merged[attribute.key] = list(attribute.value)
    for attribute in incoming:
        merged[attribute.key] = list(attribute.value)
    return merged


def parse_attributes(record: Any, strict: bool = False) -> List[Attribute]:
    """Project a user representation's ``attributes`` mapping into Attributes.

    Scalar values become one-element lists, null values and null items are
    dropped. A user without attributes yields an empty list. A malformed
    record or mapping also yields an empty list unless ``strict`` is set.

    Args:
        record: Decoded user representation
        strict: Raise on malformed input instead of returning an empty list

    Raises:
        AttributeParseFailed: Only in strict mode
    """
    try:
        return _parse(record)
    except AttributeParseFailed as e:
        if strict:
            raise
        logger.warning(f"[attributes] Unable to parse user attributes, using none: {e}")
        return []


def _parse(record: Any) -> List[Attribute]:
    if not isinstance(record, Mapping):
        raise AttributeParseFailed(f"user record is {type(record).__name__}, not an object")

    raw = record.get("attributes")
    if raw is None:
        logger.debug("[attributes] User record carries no attributes")
        return []
    if not isinstance(raw, Mapping):
        raise AttributeParseFailed(f"attributes is {type(raw).__name__}, not an object")

    parsed = []
    for key, value in raw.items():
        if value is None:
            continue
        try:
            parsed.append(Attribute(key=str(key), value=value))
        except ValueError as e:
            raise AttributeParseFailed(f"attribute {key!r}: {e}") from e
    return parsed
