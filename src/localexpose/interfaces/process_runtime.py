"""Process runtime interface for forwarding containers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class ContainerSpec:
    """Everything needed to start a detached container."""

    name: str
    image: str
    ports: list[tuple[int, int]] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    volumes: list[tuple[str, str]] = field(default_factory=list)
    network: str | None = None
    remove_on_exit: bool = False
    args: list[str] = field(default_factory=list)


class ProcessRuntime(ABC):
    """Abstract interface for the container runtime that hosts proxies.

    Every container creation and removal done by localexpose goes through an
    implementation of this interface.
    """

    @abstractmethod
    def run(self, spec: ContainerSpec) -> str:
        """Start a detached container.

        Args:
            spec: Container specification

        Returns:
            Container ID reported by the runtime

        Raises:
            ProcessRuntimeError: If the container cannot be started
        """

    @abstractmethod
    def published_port(self, name: str, container_port: int) -> int | None:
        """Get the host port a container publishes for a TCP port.

        Args:
            name: Container name
            container_port: Port inside the container

        Returns:
            Host port, or None if the container or binding does not exist
        """

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Check whether a container with this name exists.

        Args:
            name: Container name

        Returns:
            True if the container exists
        """

    @abstractmethod
    def stop(self, name: str) -> None:
        """Stop a container.

        Args:
            name: Container name

        Raises:
            ProcessRuntimeError: If the runtime fails to stop it
        """

    @abstractmethod
    def remove(self, name: str) -> None:
        """Force-remove a container.

        Args:
            name: Container name

        Raises:
            ProcessRuntimeError: If the runtime fails to remove it
        """

    @abstractmethod
    def ping(self) -> bool:
        """Check whether the runtime is installed and running.

        Returns:
            True if the runtime answers
        """
