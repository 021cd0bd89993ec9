"""Core data models for localexpose."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kubernetes.client.models import V1Service


class ClusterType(str, Enum):
    """Local Kubernetes distribution backing a kube context."""

    DOCKER_DESKTOP = "docker-desktop"
    RANCHER_DESKTOP = "rancher-desktop"
    KIND = "kind"
    MINIKUBE = "minikube"
    K3D = "k3d"
    ORBSTACK = "orbstack"
    OTHER = "other"

    def is_local_kubernetes(self) -> bool:
        """Return True if the distribution runs on the developer machine."""
        return self is not ClusterType.OTHER


@dataclass
class ExposureTarget:
    """Service whose single port should become reachable from the host."""

    name: str
    namespace: str
    node_ports: list[int] = field(default_factory=list)
    cluster_ip: str | None = None

    @property
    def node_port(self) -> int | None:
        """NodePort of the service, or None unless exactly one port is declared."""
        if len(self.node_ports) != 1:
            return None
        return self.node_ports[0]

    @classmethod
    def from_service(cls, service: V1Service) -> ExposureTarget:
        """Normalize a kubernetes client Service object.

        Args:
            service: Service as returned by CoreV1Api

        Returns:
            ExposureTarget for the service
        """
        spec = service.spec
        ports = (spec.ports or []) if spec else []
        return cls(
            name=service.metadata.name,
            namespace=service.metadata.namespace,
            node_ports=[port.node_port or 0 for port in ports],
            cluster_ip=spec.cluster_ip if spec else None,
        )


@dataclass(frozen=True)
class ProxyHandle:
    """A running forwarding container bridging a host port to a backend."""

    name: str
    host_port: int
    backend_host: str
    backend_port: int
    network: str

    @property
    def server(self) -> str:
        """Server URL the proxy exposes on the host."""
        return local_server(self.host_port)


@dataclass
class ReachabilityResult:
    """Outcome of a single connectivity check."""

    reachable: bool
    error: Exception | None = None

    def __bool__(self) -> bool:
        return self.reachable


def local_server(port: int) -> str:
    """Return the loopback API server URL for a host port."""
    return f"https://127.0.0.1:{port}"
