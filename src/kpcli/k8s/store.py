#!/usr/bin/env python3
"""
KPCLI RESOURCE STORE
--------------------
The remote declarative store kp talks to, and a kubectl-backed
implementation of it.

Store errors are mapped to RemoteCallError / NotFoundError carrying the
operation name. Nothing is retried here.
"""

import json
import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Protocol, Type, TypeVar

from kpcli.core.models import ResourceObject
from kpcli.core.registry import DEFAULT_REGISTRY, TypeRegistry
from kpcli.exceptions import NotFoundError, RemoteCallError, RemoteTimeoutError

logger = logging.getLogger("kpcli.store")

T = TypeVar("T", bound=ResourceObject)

_NOT_FOUND_SIGNALS = ("(NotFound)", "not found")


class ResourceStore(Protocol):
    """Verbs the convergence engine needs from the store."""

    def get(self, cls: Type[T], namespace: str, name: str) -> T:
        ...  # pragma: no cover

    def create(self, obj: T) -> T:
        ...  # pragma: no cover

    def patch(self, cls: Type[T], namespace: str, name: str, merge_patch: bytes) -> T:
        ...  # pragma: no cover

    def delete(self, cls: Type[T], namespace: str, name: str) -> None:
        ...  # pragma: no cover

    def watch(self, cls: Type[T], namespace: str, name: str,
              stop: threading.Event, deadline: Optional[float] = None) -> Iterator[T]:
        """Yields successive versions of the object until stop is set.

        deadline is a time.monotonic() value; no call may run past it.
        """
        ...  # pragma: no cover


@dataclass(frozen=True)
class PollBackoff:
    """Bounded exponential backoff between two polls."""

    initial: float = 1.0
    factor: float = 2.0
    maximum: float = 10.0

    def delays(self) -> Iterator[float]:
        delay = self.initial
        while True:
            yield delay
            delay = min(delay * self.factor, self.maximum)


def describe(cls: Type[ResourceObject], namespace: str, name: str) -> str:
    """Human label for an object, e.g. 'builders.kpack.io "my-builder"'."""
    label = f'{cls.TYPE.value} "{name}"'
    if namespace and cls.TYPE.namespaced:
        label += f" in namespace {namespace!r}"
    return label


class KubectlStore:
    """ResourceStore driving the kubectl binary."""

    def __init__(self, kubectl: str = "kubectl", kubeconfig: Optional[str] = None,
                 context: Optional[str] = None, backoff: Optional[PollBackoff] = None,
                 registry: Optional[TypeRegistry] = None):
        self.kubectl = kubectl
        self.kubeconfig = kubeconfig
        self.context = context
        self.backoff = backoff or PollBackoff()
        self.registry = registry or DEFAULT_REGISTRY

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def get(self, cls: Type[T], namespace: str, name: str,
            timeout: Optional[float] = None) -> T:
        args = ["get", cls.TYPE.value, name, *self._scope(cls, namespace), "-o", "json"]
        payload = self._run_json("get", describe(cls, namespace, name), args, timeout=timeout)
        return cls.from_dict(payload)

    def create(self, obj: T) -> T:
        cls = type(obj)
        manifest = obj.to_dict()
        if obj.gvk.is_empty():
            gvk = self.registry.resolve(obj)
            manifest["apiVersion"] = gvk.api_version
            manifest["kind"] = gvk.kind
        args = ["create", "-f", "-", *self._scope(cls, obj.namespace), "-o", "json"]
        payload = self._run_json(
            "create", describe(cls, obj.namespace, obj.name), args,
            input_data=json.dumps(manifest),
        )
        return cls.from_dict(payload)

    def patch(self, cls: Type[T], namespace: str, name: str, merge_patch: bytes) -> T:
        args = [
            "patch", cls.TYPE.value, name, *self._scope(cls, namespace),
            "--type", "merge", "-p", merge_patch.decode("utf-8"), "-o", "json",
        ]
        payload = self._run_json("patch", describe(cls, namespace, name), args)
        return cls.from_dict(payload)

    def delete(self, cls: Type[T], namespace: str, name: str) -> None:
        args = ["delete", cls.TYPE.value, name, *self._scope(cls, namespace), "--wait=false"]
        self._run_kubectl("delete", describe(cls, namespace, name), args)

    def watch(self, cls: Type[T], namespace: str, name: str,
              stop: threading.Event, deadline: Optional[float] = None) -> Iterator[T]:
        """
        Polls the object, yielding each time its resourceVersion changes.

        With a deadline every get is bounded by the time left, and the
        watch returns once it passes.
        """
        last_version: Optional[str] = None
        for delay in self.backoff.delays():
            if stop.is_set():
                return
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return
            try:
                obj = self.get(cls, namespace, name, timeout=remaining)
            except RemoteTimeoutError as exc:
                logger.debug("watch of %s stopped: %s", describe(cls, namespace, name), exc)
                return
            version = obj.metadata.get("resourceVersion")
            if version is None or version != last_version:
                last_version = version
                yield obj
            if deadline is not None:
                delay = min(delay, max(deadline - time.monotonic(), 0.0))
            if stop.wait(delay):
                return

    # ------------------------------------------------------------------
    # kubectl plumbing
    # ------------------------------------------------------------------

    @staticmethod
    def _scope(cls: Type[ResourceObject], namespace: str) -> List[str]:
        if cls.TYPE.namespaced and namespace:
            return ["-n", namespace]
        return []

    def _base_command(self) -> List[str]:
        command = [self.kubectl]
        if self.kubeconfig:
            command.append(f"--kubeconfig={self.kubeconfig}")
        if self.context:
            command.append(f"--context={self.context}")
        return command

    def _run_json(self, operation: str, target: str, args: List[str],
                  input_data: Optional[str] = None,
                  timeout: Optional[float] = None) -> Dict[str, Any]:
        output = self._run_kubectl(operation, target, args, input_data=input_data, timeout=timeout)
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as exc:
            raise RemoteCallError(operation, target, f"unreadable response: {exc}") from exc
        if not isinstance(payload, dict):
            raise RemoteCallError(operation, target, "unexpected response shape")
        return payload

    def _run_kubectl(self, operation: str, target: str, args: List[str],
                     input_data: Optional[str] = None,
                     timeout: Optional[float] = None) -> str:
        command = self._base_command() + args
        logger.debug("running %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                input=input_data,
                text=True,
                capture_output=True,
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise RemoteTimeoutError(operation, target, f"no response within {timeout:.1f}s") from exc
        except FileNotFoundError as exc:
            raise RemoteCallError(
                operation, target, f"{self.kubectl} executable not found",
                hint="Install kubectl or point KP_KUBECTL at it.",
            ) from exc

        if result.returncode != 0:
            reason = result.stderr.strip() or f"kubectl exited with {result.returncode}"
            if any(signal in reason for signal in _NOT_FOUND_SIGNALS):
                raise NotFoundError(operation, target, reason)
            raise RemoteCallError(operation, target, reason)
        return result.stdout.strip()
