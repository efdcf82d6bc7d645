"""KubectlStore command construction and error mapping. subprocess is mocked."""

import json
import subprocess
import threading
import time
from itertools import islice
from unittest.mock import MagicMock, patch

import pytest

from kpcli.core.models import Builder, ClusterBuilder
from kpcli.core.waiter import ConvergenceWaiter
from kpcli.exceptions import NotFoundError, RemoteCallError, RemoteTimeoutError, WaitTimeoutError
from kpcli.k8s.store import KubectlStore, PollBackoff, describe


def _completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def _payload(name="b", namespace="team", version="1", **extra):
    data = {
        "apiVersion": "kpack.io/v1alpha1",
        "kind": "Builder",
        "metadata": {"name": name, "namespace": namespace, "resourceVersion": version},
    }
    data.update(extra)
    return json.dumps(data)


@pytest.fixture
def run():
    with patch("kpcli.k8s.store.subprocess.run") as mocked:
        mocked.return_value = _completed(_payload())
        yield mocked


def test_get_namespaced(run):
    obj = KubectlStore().get(Builder, "team", "b")
    command = run.call_args.args[0]
    assert command == ["kubectl", "get", "builders.kpack.io", "b", "-n", "team", "-o", "json"]
    assert obj.namespace == "team"
    assert obj.kind == "Builder"


def test_cluster_scoped_never_gets_namespace(run):
    KubectlStore().get(ClusterBuilder, "team", "cb")
    assert "-n" not in run.call_args.args[0]


def test_kubeconfig_and_context_flags(run):
    KubectlStore(kubectl="/opt/kubectl", kubeconfig="/tmp/kc", context="prod").get(Builder, "team", "b")
    assert run.call_args.args[0][:3] == ["/opt/kubectl", "--kubeconfig=/tmp/kc", "--context=prod"]


def test_patch_sends_merge_patch(run):
    KubectlStore().patch(Builder, "team", "b", b'{"spec":{"tag":"x"}}')
    command = run.call_args.args[0]
    assert command[command.index("--type") + 1] == "merge"
    assert command[command.index("-p") + 1] == '{"spec":{"tag":"x"}}'


def test_create_stamps_identity_on_manifest_only(run):
    obj = Builder.new("b", "team")
    KubectlStore().create(obj)
    manifest = json.loads(run.call_args.kwargs["input"])
    assert manifest["apiVersion"] == "kpack.io/v1alpha1"
    assert manifest["kind"] == "Builder"
    assert obj.api_version == ""


def test_delete_does_not_block(run):
    run.return_value = _completed('builder.kpack.io "b" deleted')
    KubectlStore().delete(Builder, "team", "b")
    assert run.call_args.args[0][-1] == "--wait=false"


def test_not_found_is_mapped(run):
    run.return_value = _completed(
        stderr='Error from server (NotFound): builders.kpack.io "b" not found', returncode=1)
    with pytest.raises(NotFoundError) as excinfo:
        KubectlStore().get(Builder, "team", "b")
    assert excinfo.value.operation == "get"
    assert str(excinfo.value).startswith('get builders.kpack.io "b"')


def test_other_failures_carry_the_operation(run):
    run.return_value = _completed(stderr="Error from server (Forbidden): nope", returncode=1)
    with pytest.raises(RemoteCallError) as excinfo:
        KubectlStore().patch(Builder, "team", "b", b"{}")
    assert not isinstance(excinfo.value, NotFoundError)
    assert excinfo.value.operation == "patch"
    assert "Forbidden" in excinfo.value.reason


def test_missing_binary(run):
    run.side_effect = FileNotFoundError()
    with pytest.raises(RemoteCallError) as excinfo:
        KubectlStore(kubectl="nokubectl").get(Builder, "team", "b")
    assert "nokubectl" in str(excinfo.value)
    assert excinfo.value.hint


def test_unreadable_response(run):
    run.return_value = _completed("not json")
    with pytest.raises(RemoteCallError):
        KubectlStore().get(Builder, "team", "b")


def test_watch_yields_only_new_versions():
    store = KubectlStore(backoff=PollBackoff(initial=0, factor=1, maximum=0))
    stop = threading.Event()
    versions = iter(["1", "1", "2"])

    def fake_get(cls, namespace, name, timeout=None):
        version = next(versions)
        if version == "2":
            stop.set()
        return Builder.from_dict(json.loads(_payload(version=version)))

    store.get = MagicMock(side_effect=fake_get)
    seen = [obj.metadata["resourceVersion"] for obj in store.watch(Builder, "team", "b", stop)]
    assert seen == ["1", "2"]


def test_watch_returns_once_stopped():
    store = KubectlStore()
    store.get = MagicMock()
    stop = threading.Event()
    stop.set()
    assert list(store.watch(Builder, "team", "b", stop)) == []
    store.get.assert_not_called()


def test_backoff_is_bounded():
    assert list(islice(PollBackoff().delays(), 6)) == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


def test_describe():
    assert describe(Builder, "team", "b") == "builders.kpack.io \"b\" in namespace 'team'"
    assert describe(ClusterBuilder, "team", "cb") == 'clusterbuilders.kpack.io "cb"'


# ---------------------------------------------------------------------------
# Deadlines
# ---------------------------------------------------------------------------

def _hanging_kubectl(command, **kwargs):
    """Behaves like a kubectl that takes 2s to answer."""
    timeout = kwargs.get("timeout")
    if timeout is not None and timeout < 2:
        time.sleep(timeout)
        raise subprocess.TimeoutExpired(command, timeout)
    time.sleep(2)
    return _completed(_payload())


def test_get_timeout_is_mapped(run):
    run.side_effect = subprocess.TimeoutExpired(["kubectl"], 1.5)
    with pytest.raises(RemoteTimeoutError) as excinfo:
        KubectlStore().get(Builder, "team", "b", timeout=1.5)
    assert run.call_args.kwargs["timeout"] == 1.5
    assert excinfo.value.operation == "get"
    assert "1.5s" in str(excinfo.value)


def test_watch_with_past_deadline_makes_no_call():
    store = KubectlStore()
    store.get = MagicMock()
    assert list(store.watch(Builder, "team", "b", threading.Event(), deadline=time.monotonic() - 1)) == []
    store.get.assert_not_called()


def test_hanging_kubectl_cannot_outlive_the_wait_deadline(run):
    run.side_effect = _hanging_kubectl
    waiter = ConvergenceWaiter(KubectlStore(backoff=PollBackoff(0, 1, 0)), timeout=0.2)

    started = time.monotonic()
    with pytest.raises(WaitTimeoutError):
        waiter.wait(Builder.new("b", "team"))

    assert time.monotonic() - started < 1.0
    assert run.call_args.kwargs["timeout"] <= 0.2
