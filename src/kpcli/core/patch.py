#!/usr/bin/env python3
"""
KPCLI PATCH ENGINE
------------------
Computes and applies RFC 7386 JSON merge patches.

Merge semantics:
  * a key present with a value sets that value,
  * a key present with null removes the field,
  * an absent key leaves the field untouched,
  * lists are replaced wholesale.

A diff between two snapshots that do not differ encodes as b"", which
callers treat as "nothing to patch".
"""

import copy
import json
from typing import Any, Dict

from kpcli.core.models import ResourceObject


def _differs(left: Any, right: Any) -> bool:
    # JSON distinguishes true from 1, Python equality does not
    if type(left) is not type(right):
        return True
    return left != right


def merge_diff(original: Dict[str, Any], modified: Dict[str, Any]) -> Dict[str, Any]:
    """Return the smallest merge patch turning original into modified."""
    patch: Dict[str, Any] = {}

    for key in original:
        if key not in modified:
            patch[key] = None

    for key, value in modified.items():
        if key not in original:
            patch[key] = copy.deepcopy(value)
            continue

        current = original[key]
        if isinstance(current, dict) and isinstance(value, dict):
            nested = merge_diff(current, value)
            if nested:
                patch[key] = nested
        elif _differs(current, value):
            patch[key] = copy.deepcopy(value)

    return patch


def apply_merge_patch(target: Any, patch: Any) -> Any:
    """Apply a merge patch and return the result. target is left untouched."""
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)

    result = copy.deepcopy(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = apply_merge_patch(result.get(key), value)
    return result


def encode_patch(patch: Dict[str, Any]) -> bytes:
    """Compact, key-sorted JSON. An empty patch encodes as b""."""
    if not patch:
        return b""
    return json.dumps(patch, separators=(",", ":"), sort_keys=True).encode("utf-8")


def create_patch(observed: ResourceObject, desired: ResourceObject) -> bytes:
    """
    Diffs two snapshots of the same object.

    desired must be a deep copy of observed mutated locally; only the
    fields that differ end up in the patch.
    """
    return encode_patch(merge_diff(observed.to_dict(), desired.to_dict()))
