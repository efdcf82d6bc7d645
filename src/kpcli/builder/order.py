#!/usr/bin/env python3
"""
KPCLI BUILD ORDER - Loader & Validator
--------------------------------------
Reads a builder's buildpack order from a YAML file and checks it is a
viable spec.order value before any command sends it to the store.

Accepted layouts:

    - group:                      order:
      - id: paketo-buildpacks/go    - group:
                                      - id: paketo-buildpacks/go
"""

from pathlib import Path
from typing import Any, List, Tuple, Union

from ruamel.yaml import YAML, YAMLError

from kpcli.exceptions import ValidationError


def validate_order(order: Any) -> Tuple[bool, str]:
    """
    Structural check of an order value.
    Returns (valid, message) where message explains the first problem found.
    """
    if not isinstance(order, list) or not order:
        return False, "order must be a non-empty list of entries"

    for index, entry in enumerate(order):
        if not isinstance(entry, dict):
            return False, f"entry {index} must be a map"

        group = entry.get("group")
        if not isinstance(group, list) or not group:
            return False, f"entry {index} needs a non-empty 'group' list"

        for position, ref in enumerate(group):
            if not isinstance(ref, dict):
                return False, f"entry {index} group item {position} must be a map"
            if not ref.get("id"):
                return False, f"entry {index} group item {position} is missing 'id'"

    return True, "order passes structural check"


def _plain(data: Any) -> Any:
    """Strips ruamel containers down to builtin dicts and lists."""
    if isinstance(data, dict):
        return {str(key): _plain(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_plain(item) for item in data]
    return data


def read_order(path: Union[str, Path]) -> List[dict]:
    """Loads and validates an order file. Raises ValidationError on any problem."""
    order_path = Path(path)
    try:
        raw_text = order_path.read_text(encoding='utf-8-sig')
    except OSError as exc:
        raise ValidationError(f"cannot read order file {str(order_path)!r}: {exc.strerror}") from exc

    try:
        data = YAML(typ='safe').load(raw_text)
    except YAMLError as exc:
        raise ValidationError(f"order file {str(order_path)!r} is not valid yaml: {exc}") from exc

    if isinstance(data, dict) and "order" in data:
        data = data["order"]
    order = _plain(data)

    valid, message = validate_order(order)
    if not valid:
        raise ValidationError(
            f"invalid order file {str(order_path)!r}: {message}",
            hint="Expected a list of '- group: [ {id: ...} ]' entries.",
        )
    return order
