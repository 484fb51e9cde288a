"""
Generation of row ids and human-readable numbers.

Reference numbers look like ``LA-202506-00042`` and receipt numbers like
``OR-202506-00042`` / ``CR-202506-00042``: a prefix, the year and month of
creation, and a zero-padded 5-digit suffix. Suffixes are random in
production; uniqueness is enforced by the database and callers retry on
collision. Tests inject ``SequentialNumberGenerator`` for predictable values.
"""
from __future__ import annotations

import itertools
import re
import secrets
import uuid
from datetime import datetime
from typing import Iterable, Iterator, Optional, Protocol

REFERENCE_PREFIX = "LA"
RECEIPT_PREFIXES = {
    "OFFICIAL_RECEIPT": "OR",
    "COLLECTION_RECEIPT": "CR",
}

REFERENCE_NUMBER_PATTERN = re.compile(r"^LA-\d{6}-\d{5}$")
RECEIPT_NUMBER_PATTERN = re.compile(r"^(OR|CR)-\d{6}-\d{5}$")

_SUFFIX_SPACE = 100_000


def format_number(prefix: str, when: datetime, suffix: int) -> str:
    return f"{prefix}-{when.year}{when.month:02d}-{suffix % _SUFFIX_SPACE:05d}"


def receipt_prefix(receipt_type: str) -> str:
    try:
        return RECEIPT_PREFIXES[receipt_type]
    except KeyError:
        raise ValueError(f"Unknown receipt type: {receipt_type}") from None


class NumberGenerator(Protocol):
    def new_id(self, prefix: str) -> str: ...

    def reference_number(self, when: datetime) -> str: ...

    def receipt_number(self, receipt_type: str, when: datetime) -> str: ...


class RandomNumberGenerator:
    """Production generator: uuid row ids, random 5-digit suffixes."""

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4().hex[:12]}"

    def _suffix(self) -> int:
        return secrets.randbelow(_SUFFIX_SPACE)

    def reference_number(self, when: datetime) -> str:
        return format_number(REFERENCE_PREFIX, when, self._suffix())

    def receipt_number(self, receipt_type: str, when: datetime) -> str:
        return format_number(receipt_prefix(receipt_type), when, self._suffix())


class SequentialNumberGenerator:
    """
    Deterministic generator.
    Suffixes come from ``suffixes`` when given (repeat a value to force a
    collision), otherwise count up from ``start``. Row ids count up as well.
    """

    def __init__(self, suffixes: Optional[Iterable[int]] = None, start: int = 1):
        self._suffixes: Iterator[int] = iter(suffixes) if suffixes is not None else itertools.count(start)
        self._ids = itertools.count(1)

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids):012d}"

    def reference_number(self, when: datetime) -> str:
        return format_number(REFERENCE_PREFIX, when, next(self._suffixes))

    def receipt_number(self, receipt_type: str, when: datetime) -> str:
        return format_number(receipt_prefix(receipt_type), when, next(self._suffixes))
