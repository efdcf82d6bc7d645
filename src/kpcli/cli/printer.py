#!/usr/bin/env python3
"""
KPCLI OBJECT PRINTER
--------------------
Renders serialization-ready resource dicts as yaml or json text.

The yaml printer keeps kubectl's familiar layout: apiVersion, kind,
metadata, spec, then anything else, with status last.
"""

import io
import json
from typing import Any, Dict

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from kpcli.core.context import OUTPUT_FORMATS
from kpcli.exceptions import ValidationError


class ObjectPrinter:
    """Base printer. Subclasses implement render()."""

    def render(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError


class YamlPrinter(ObjectPrinter):

    def __init__(self):
        self.yaml = YAML(typ='rt')
        # Standard K8s: 2 spaces, sequences indented under their key
        self.yaml.indent(mapping=2, sequence=4, offset=2)
        self.yaml.width = 4096
        self.preferred_order = ["apiVersion", "kind", "metadata", "spec"]
        self.trailing_order = ["status"]

    def _ordered(self, data: Any, top_level: bool = False) -> Any:
        """Recursively converts dicts to CommentedMaps, ordering top-level keys."""
        if isinstance(data, list):
            return [self._ordered(item) for item in data]
        if not isinstance(data, dict):
            return data

        keys = list(data.keys())
        if top_level:
            def sort_logic(key):
                if key in self.preferred_order:
                    return self.preferred_order.index(key)
                if key in self.trailing_order:
                    return len(self.preferred_order) + len(keys) + self.trailing_order.index(key)
                # Unknown keys keep their relative original position
                return len(self.preferred_order) + keys.index(key)
            keys = sorted(keys, key=sort_logic)

        ordered = CommentedMap()
        for key in keys:
            ordered[key] = self._ordered(data[key])
        return ordered

    def render(self, data: Dict[str, Any]) -> str:
        stream = io.StringIO()
        self.yaml.dump(self._ordered(data, top_level=True), stream)
        return stream.getvalue()


class JsonPrinter(ObjectPrinter):

    def __init__(self, indent: int = 4):
        self.indent = indent

    def render(self, data: Dict[str, Any]) -> str:
        return json.dumps(data, indent=self.indent) + "\n"


def new_object_printer(output_format: str) -> ObjectPrinter:
    """Returns the printer for an --output value."""
    if output_format == "yaml":
        return YamlPrinter()
    if output_format == "json":
        return JsonPrinter()
    raise ValidationError(
        f"invalid output format {output_format!r}",
        hint=f"Supported formats: {', '.join(OUTPUT_FORMATS)}",
    )
