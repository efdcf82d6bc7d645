"""Shared fixtures for the kpcli test suite.

No test talks to a cluster: commands run against FakeStore, an
in-memory ResourceStore that records every call it receives.
"""

import io
import json
import threading
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type

import pytest

from kpcli.cli.main import main
from kpcli.core.models import ClusterBuilder, ResourceObject
from kpcli.core.patch import apply_merge_patch
from kpcli.exceptions import NotFoundError
from kpcli.k8s.store import describe


ORDER_YAML = """\
- group:
  - id: paketo-buildpacks/java
- group:
  - id: paketo-buildpacks/nodejs
"""


class FakeStore:
    """In-memory ResourceStore. watch() replays watch_versions."""

    def __init__(self, objects: Optional[List[ResourceObject]] = None,
                 watch_versions: Optional[List[ResourceObject]] = None):
        self.objects: Dict[Tuple[type, str, str], ResourceObject] = {}
        self.calls: List[Tuple[Any, ...]] = []
        self.watch_versions = list(watch_versions or [])
        for obj in objects or []:
            self.objects[self._key(type(obj), obj.namespace, obj.name)] = obj.deep_copy()

    @staticmethod
    def _key(cls: Type[ResourceObject], namespace: str, name: str) -> Tuple[type, str, str]:
        return cls, namespace if cls.TYPE.namespaced else "", name

    def verbs(self) -> List[str]:
        return [call[0] for call in self.calls]

    def get(self, cls, namespace, name):
        self.calls.append(("get", cls, namespace, name))
        key = self._key(cls, namespace, name)
        if key not in self.objects:
            raise NotFoundError("get", describe(cls, namespace, name), "not found")
        return self.objects[key].deep_copy()

    def create(self, obj):
        self.calls.append(("create", obj.deep_copy()))
        stored = obj.deep_copy()
        stored.metadata.setdefault("resourceVersion", "1")
        self.objects[self._key(type(obj), obj.namespace, obj.name)] = stored
        return stored.deep_copy()

    def patch(self, cls, namespace, name, merge_patch):
        self.calls.append(("patch", cls, namespace, name, merge_patch))
        key = self._key(cls, namespace, name)
        current = self.objects[key]
        patched = cls.from_dict(apply_merge_patch(current.to_dict(), json.loads(merge_patch)))
        self.objects[key] = patched
        return patched.deep_copy()

    def delete(self, cls, namespace, name):
        self.calls.append(("delete", cls, namespace, name))
        self.objects.pop(self._key(cls, namespace, name), None)

    def watch(self, cls, namespace, name, stop: threading.Event,
              deadline=None) -> Iterator[ResourceObject]:
        self.calls.append(("watch", cls, namespace, name))
        for version in self.watch_versions:
            if stop.is_set():
                return
            yield version.deep_copy()


def ready(obj: ResourceObject, status: str, message: str = "",
          generation: int = 1, observed: int = 1) -> ResourceObject:
    """Copy of obj carrying a Ready condition."""
    version = obj.deep_copy()
    version.metadata["generation"] = generation
    version.status = {
        "observedGeneration": observed,
        "conditions": [{"type": "Ready", "status": status, "message": message}],
    }
    return version


def cluster_builder(name: str = "my-cb", **spec_overrides: Any) -> ClusterBuilder:
    spec = {
        "tag": "registry.example.com/builders/my-cb",
        "stack": {"kind": "ClusterStack", "name": "default"},
        "store": {"kind": "ClusterStore", "name": "default"},
        "serviceAccountRef": {"name": "default", "namespace": "kpack"},
        "order": [{"group": [{"id": "paketo-buildpacks/java"}]}],
    }
    spec.update(spec_overrides)
    return ClusterBuilder.from_dict({
        "apiVersion": "kpack.io/v1alpha1",
        "kind": "ClusterBuilder",
        "metadata": {"name": name, "resourceVersion": "7", "generation": 1},
        "spec": spec,
        "status": {
            "observedGeneration": 1,
            "conditions": [{"type": "Ready", "status": "True"}],
        },
    })


@pytest.fixture
def store() -> FakeStore:
    return FakeStore(objects=[cluster_builder()])


@pytest.fixture
def order_file(tmp_path):
    path = tmp_path / "order.yaml"
    path.write_text(ORDER_YAML, encoding="utf-8")
    return path


@pytest.fixture
def run_kp(tmp_path):
    """Runs kp in-process against a store. Returns (exit_code, stdout, stderr)."""

    def _run(store: FakeStore, *argv: str, environ: Optional[Dict[str, str]] = None):
        out, err = io.StringIO(), io.StringIO()
        env = {"KP_CONFIG": str(tmp_path / "missing-config.yaml")}
        env.update(environ or {})
        code = main(list(argv), out=out, err=err,
                    store_factory=lambda config: store, environ=env)
        return code, out.getvalue(), err.getvalue()

    return _run
