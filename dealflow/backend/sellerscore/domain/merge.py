# sellerscore/domain/merge.py
"""
Last-authoritative-wins merge of provider patches into one RawPropertySignals.

A field set by one patch is only replaced by a patch with strictly higher
authority. None never overwrites. Equal authority keeps whichever patch came
first in the order given (callers pass patches in a fixed source order, not
completion order, so the result does not depend on network timing).
"""
from __future__ import annotations

from dataclasses import fields, replace
from typing import Any, Iterable

from .types import RawPropertySignals, SignalPatch

# Authority ranks
AUTHORITY_PROPERTY_RECORD = 1
AUTHORITY_MARKET = 2
AUTHORITY_PERMITS = 2
AUTHORITY_STORE = 2
AUTHORITY_VALUATION = 3

_SIGNAL_FIELDS = frozenset(f.name for f in fields(RawPropertySignals))


def merge_patches(patches: Iterable[SignalPatch]) -> tuple[RawPropertySignals, dict[str, str]]:
    """Returns the merged signals plus which source supplied each field."""
    values: dict[str, Any] = {}
    ranks: dict[str, int] = {}
    provenance: dict[str, str] = {}

    for patch in patches:
        for name, value in patch.values.items():
            if name not in _SIGNAL_FIELDS or value is None:
                continue
            current = ranks.get(name)
            if current is None or patch.authority > current:
                values[name] = value
                ranks[name] = patch.authority
                provenance[name] = patch.source

    return RawPropertySignals(**values), provenance


def fill_missing(base: RawPropertySignals, **values: Any) -> RawPropertySignals:
    """Set fields that are still None; reported values are left alone."""
    updates = {
        k: v for k, v in values.items()
        if k in _SIGNAL_FIELDS and v is not None and getattr(base, k) is None
    }
    return replace(base, **updates) if updates else base
