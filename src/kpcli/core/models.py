#!/usr/bin/env python3
"""
KPCLI CORE MODELS
-----------------
Defines the resource objects exchanged with the remote store.
These models are the lowest level of resource abstraction in kp.

Objects are plain dataclasses holding the JSON-shaped content of a
resource. Each concrete class carries a stable ResourceType tag, which is
what the type registry keys on when an object arrives without an
embedded apiVersion/kind.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar


class ResourceType(Enum):
    """Stable type tag for every resource kp knows about.

    The value is the resource name handed to the store (kubectl resource
    argument).
    """

    SECRET = "secrets"
    SERVICE_ACCOUNT = "serviceaccounts"
    IMAGE = "images.kpack.io"
    BUILDER = "builders.kpack.io"
    CLUSTER_BUILDER = "clusterbuilders.kpack.io"
    CLUSTER_STACK = "clusterstacks.kpack.io"
    CLUSTER_STORE = "clusterstores.kpack.io"

    @property
    def namespaced(self) -> bool:
        return not self.name.startswith("CLUSTER_")


@dataclass(frozen=True)
class GroupVersionKind:
    """The (group, version, kind) identity of a resource type."""

    group: str = ""
    version: str = ""
    kind: str = ""

    @property
    def api_version(self) -> str:
        if not self.version:
            return ""
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    def is_empty(self) -> bool:
        """True when the identity cannot be used for serialization."""
        return not self.version or not self.kind

    @classmethod
    def parse(cls, api_version: str, kind: str) -> "GroupVersionKind":
        """Split an apiVersion string ("group/version" or "version")."""
        if "/" in api_version:
            group, version = api_version.split("/", 1)
        else:
            group, version = "", api_version
        return cls(group=group, version=version, kind=kind)


T = TypeVar("T", bound="ResourceObject")


@dataclass
class ResourceObject:
    """
    A typed resource with identity, a user-editable spec and a
    server-owned status.

    api_version and kind stay empty when the payload did not carry them;
    they are never filled in on the object itself.
    """

    TYPE: ClassVar[ResourceType]
    # Top-level payload keys besides the identity/metadata/spec/status
    # block, mapped to the attribute holding them.
    EXTRA_FIELDS: ClassVar[Dict[str, str]] = {}

    api_version: str = ""
    kind: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    spec: Dict[str, Any] = field(default_factory=dict)
    status: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace", "")

    @property
    def gvk(self) -> GroupVersionKind:
        return GroupVersionKind.parse(self.api_version, self.kind)

    def deep_copy(self: T) -> T:
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Return a new JSON-shaped dict. Empty identity and blocks are omitted."""
        data: Dict[str, Any] = {}
        if self.api_version:
            data["apiVersion"] = self.api_version
        if self.kind:
            data["kind"] = self.kind
        data["metadata"] = copy.deepcopy(self.metadata)
        if self.spec:
            data["spec"] = copy.deepcopy(self.spec)
        for key, attr in self.EXTRA_FIELDS.items():
            value = getattr(self, attr)
            if value:
                data[key] = copy.deepcopy(value)
        if self.status:
            data["status"] = copy.deepcopy(self.status)
        return data

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Decode a store payload. Missing identity stays empty."""
        extras = {
            attr: copy.deepcopy(data[key])
            for key, attr in cls.EXTRA_FIELDS.items()
            if key in data
        }
        return cls(
            api_version=data.get("apiVersion") or "",
            kind=data.get("kind") or "",
            metadata=copy.deepcopy(data.get("metadata") or {}),
            spec=copy.deepcopy(data.get("spec") or {}),
            status=copy.deepcopy(data.get("status") or {}),
            **extras,
        )

    @classmethod
    def new(cls: Type[T], name: str, namespace: Optional[str] = None, **kwargs: Any) -> T:
        """Build a local object with metadata only; identity left empty."""
        metadata: Dict[str, Any] = {"name": name}
        if namespace and cls.TYPE.namespaced:
            metadata["namespace"] = namespace
        return cls(metadata=metadata, **kwargs)


# --- Core v1 types ---------------------------------------------------------

@dataclass
class Secret(ResourceObject):
    TYPE: ClassVar[ResourceType] = ResourceType.SECRET
    EXTRA_FIELDS: ClassVar[Dict[str, str]] = {
        "type": "type",
        "data": "data",
        "stringData": "string_data",
    }

    type: str = ""
    data: Dict[str, str] = field(default_factory=dict)
    string_data: Dict[str, str] = field(default_factory=dict)


@dataclass
class ServiceAccount(ResourceObject):
    TYPE: ClassVar[ResourceType] = ResourceType.SERVICE_ACCOUNT
    EXTRA_FIELDS: ClassVar[Dict[str, str]] = {
        "secrets": "secrets",
        "imagePullSecrets": "image_pull_secrets",
    }

    secrets: List[Dict[str, Any]] = field(default_factory=list)
    image_pull_secrets: List[Dict[str, Any]] = field(default_factory=list)


# --- kpack build types -----------------------------------------------------

@dataclass
class Image(ResourceObject):
    TYPE: ClassVar[ResourceType] = ResourceType.IMAGE


@dataclass
class Builder(ResourceObject):
    TYPE: ClassVar[ResourceType] = ResourceType.BUILDER


@dataclass
class ClusterBuilder(ResourceObject):
    TYPE: ClassVar[ResourceType] = ResourceType.CLUSTER_BUILDER


@dataclass
class ClusterStack(ResourceObject):
    TYPE: ClassVar[ResourceType] = ResourceType.CLUSTER_STACK


@dataclass
class ClusterStore(ResourceObject):
    TYPE: ClassVar[ResourceType] = ResourceType.CLUSTER_STORE
