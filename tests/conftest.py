"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Any

import pytest

from localexpose.core.config import ExposeConfig, TimeoutsConfig
from localexpose.core.exceptions import ProcessRuntimeError
from localexpose.core.kubeconfig import KubeCredentialSnapshot
from localexpose.core.models import ExposureTarget, ReachabilityResult
from localexpose.expose.proxy_manager import ProxyManager
from localexpose.expose.verifier import ConnectivityVerifier
from localexpose.interfaces.process_runtime import ContainerSpec, ProcessRuntime


def make_kubeconfig(context: str, server: str, ca_data: str | None = "Y2EtZGF0YQ==") -> dict[str, Any]:
    """Build a minimal single-context kubeconfig mapping."""
    cluster: dict[str, Any] = {"server": server}
    if ca_data:
        cluster["certificate-authority-data"] = ca_data
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{"name": context, "cluster": cluster}],
        "users": [{"name": context, "user": {"token": "test-token"}}],
        "contexts": [{"name": context, "context": {"cluster": context, "user": context}}],
        "current-context": context,
    }


def make_file_referenced_kubeconfig(
    directory: Path, server: str = "https://192.168.49.2:8443"
) -> dict[str, Any]:
    """Build a minikube-style kubeconfig whose certificates live in files.

    The cluster CA is referenced by absolute path, the client certificate and
    key by paths relative to ``directory``.
    """
    (directory / "ca.crt").write_bytes(b"ca-cert")
    (directory / "client.crt").write_bytes(b"client-cert")
    (directory / "client.key").write_bytes(b"client-key")

    data = make_kubeconfig("minikube", server, ca_data=None)
    data["clusters"][0]["cluster"]["certificate-authority"] = str(directory / "ca.crt")
    data["users"][0]["user"] = {"client-certificate": "client.crt", "client-key": "client.key"}
    return data


class FakeRuntime(ProcessRuntime):
    """In-memory container runtime."""

    def __init__(self) -> None:
        self.containers: dict[str, ContainerSpec] = {}
        self.extra_containers: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.run_error: ProcessRuntimeError | None = None
        self.stop_error: ProcessRuntimeError | None = None
        self.running = True

    def add(self, spec: ContainerSpec) -> None:
        self.containers[spec.name] = spec

    def run(self, spec: ContainerSpec) -> str:
        self.calls.append(("run", spec.name))
        if self.run_error:
            raise self.run_error
        if spec.name in self.containers:
            raise ProcessRuntimeError(f"container name {spec.name} already in use", returncode=125)
        self.containers[spec.name] = spec
        return f"id-{spec.name}"

    def published_port(self, name: str, container_port: int) -> int | None:
        self.calls.append(("published_port", name))
        spec = self.containers.get(name)
        if spec is None:
            return None
        for host_port, port in spec.ports:
            if port == container_port:
                return host_port
        return None

    def exists(self, name: str) -> bool:
        self.calls.append(("exists", name))
        return name in self.containers or name in self.extra_containers

    def stop(self, name: str) -> None:
        self.calls.append(("stop", name))
        if self.stop_error:
            raise self.stop_error
        if name not in self.containers and name not in self.extra_containers:
            raise ProcessRuntimeError(f"No such container: {name}", returncode=1)
        self.containers.pop(name, None)
        self.extra_containers.discard(name)

    def remove(self, name: str) -> None:
        self.calls.append(("remove", name))
        self.containers.pop(name, None)
        self.extra_containers.discard(name)

    def ping(self) -> bool:
        return self.running

    def called(self, operation: str) -> list[str]:
        return [name for op, name in self.calls if op == operation]


class StubVerifier(ConnectivityVerifier):
    """Verifier answering from a script instead of the network."""

    def __init__(self, reachable: set[str] | None = None, fail_first: int = 0) -> None:
        super().__init__(request_timeout=0.01)
        self.reachable = reachable if reachable is not None else set()
        self.fail_first = fail_first
        self.error: Exception = ConnectionRefusedError("connection refused")
        self.calls: list[tuple[KubeCredentialSnapshot, str]] = []

    def verify(self, snapshot, server, timeout=None):
        self.calls.append((snapshot, server))
        if server in self.reachable and len(self.calls) > self.fail_first:
            return ReachabilityResult(reachable=True)
        return ReachabilityResult(reachable=False, error=self.error)

    @property
    def servers(self) -> list[str]:
        return [server for _, server in self.calls]


@pytest.fixture
def fast_config() -> ExposeConfig:
    """Configuration with timeouts short enough for unit tests."""
    return ExposeConfig(
        timeouts=TimeoutsConfig(
            poll_interval=0.01,
            request_timeout=0.01,
            direct_connection=0.1,
            existing_proxy=0.05,
            proxy_startup=0.1,
            background_proxy_startup=0.1,
        )
    )


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    """Provide an empty fake container runtime."""
    return FakeRuntime()


@pytest.fixture
def stub_verifier() -> StubVerifier:
    """Provide a verifier that reaches nothing until told otherwise."""
    return StubVerifier()


@pytest.fixture
def proxy_manager(fake_runtime, stub_verifier, fast_config) -> ProxyManager:
    """Provide a proxy manager wired to the fakes."""
    return ProxyManager(fake_runtime, stub_verifier, fast_config)


@pytest.fixture
def vcluster_config() -> KubeCredentialSnapshot:
    """Virtual cluster kubeconfig snapshot."""
    return KubeCredentialSnapshot(make_kubeconfig("my-vcluster", "https://localhost:8443"))


@pytest.fixture
def kind_host_config() -> KubeCredentialSnapshot:
    """Host kubeconfig for a kind cluster named dev."""
    return KubeCredentialSnapshot(make_kubeconfig("kind-dev", "https://127.0.0.1:41235"))


@pytest.fixture
def minikube_host_config() -> KubeCredentialSnapshot:
    """Host kubeconfig for a minikube cluster."""
    return KubeCredentialSnapshot(make_kubeconfig("minikube", "https://192.168.49.2:8443"))


@pytest.fixture
def target() -> ExposureTarget:
    """Single-port NodePort service."""
    return ExposureTarget(name="my-vcluster", namespace="team-a", node_ports=[30443], cluster_ip="10.96.0.12")
