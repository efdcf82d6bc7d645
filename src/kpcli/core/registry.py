#!/usr/bin/env python3
"""
KPCLI TYPE REGISTRY
-------------------
Closed table from a resource's type tag to its (group, version, kind)
identity. Consulted only when an object carries no identity of its own,
e.g. objects built locally or decoded from a bare payload.

Supporting a new resource kind means adding one entry to _DEFAULT_TABLE.
"""

from typing import Dict, Mapping, Optional

from kpcli.core.models import GroupVersionKind, ResourceObject, ResourceType
from kpcli.exceptions import UnknownTypeError

CORE_GROUP = ""
CORE_VERSION = "v1"
BUILD_GROUP = "kpack.io"
BUILD_VERSION = "v1alpha1"

_DEFAULT_TABLE: Dict[ResourceType, GroupVersionKind] = {
    ResourceType.SECRET: GroupVersionKind(CORE_GROUP, CORE_VERSION, "Secret"),
    ResourceType.SERVICE_ACCOUNT: GroupVersionKind(CORE_GROUP, CORE_VERSION, "ServiceAccount"),
    ResourceType.IMAGE: GroupVersionKind(BUILD_GROUP, BUILD_VERSION, "Image"),
    ResourceType.BUILDER: GroupVersionKind(BUILD_GROUP, BUILD_VERSION, "Builder"),
    ResourceType.CLUSTER_BUILDER: GroupVersionKind(BUILD_GROUP, BUILD_VERSION, "ClusterBuilder"),
    ResourceType.CLUSTER_STACK: GroupVersionKind(BUILD_GROUP, BUILD_VERSION, "ClusterStack"),
    ResourceType.CLUSTER_STORE: GroupVersionKind(BUILD_GROUP, BUILD_VERSION, "ClusterStore"),
}


class TypeRegistry:
    """Exact-match lookup of identities by type tag."""

    def __init__(self, table: Optional[Mapping[ResourceType, GroupVersionKind]] = None):
        source = _DEFAULT_TABLE if table is None else table
        self._table: Dict[ResourceType, GroupVersionKind] = dict(source)

    def lookup(self, type_tag: ResourceType) -> Optional[GroupVersionKind]:
        return self._table.get(type_tag)

    def resolve(self, obj: ResourceObject) -> GroupVersionKind:
        """Returns the registered identity for obj's type or raises UnknownTypeError."""
        type_tag = getattr(type(obj), "TYPE", None)
        gvk = self.lookup(type_tag) if type_tag is not None else None
        if gvk is None:
            raise UnknownTypeError(
                f"failed to output. unknown type {type(obj).__name__!r}",
                hint="The resource type is missing from the type registry.",
            )
        return gvk

    def __contains__(self, type_tag: object) -> bool:
        return type_tag in self._table

    def __len__(self) -> int:
        return len(self._table)


DEFAULT_REGISTRY = TypeRegistry()
