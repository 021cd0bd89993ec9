"""Docker CLI wrapper implementing the ProcessRuntime interface."""

import subprocess

from localexpose.core.exceptions import ProcessRuntimeError
from localexpose.interfaces.process_runtime import ContainerSpec, ProcessRuntime
from localexpose.utils.logging import get_logger

logger = get_logger(__name__)


def build_run_args(spec: ContainerSpec) -> list[str]:
    """Build the arguments of a detached ``run`` for a container spec.

    Args:
        spec: Container specification

    Returns:
        Argument list, without the binary name
    """
    args = ["run", "-d"]
    for host_port, container_port in spec.ports:
        args.extend(["-p", f"{host_port}:{container_port}"])
    for host_path, container_path in spec.volumes:
        args.extend(["-v", f"{host_path}:{container_path}"])
    if spec.remove_on_exit:
        args.append("--rm")
    args.append(f"--name={spec.name}")
    for key, value in spec.env.items():
        args.extend(["-e", f"{key}={value}"])
    if spec.network:
        args.append(f"--network={spec.network}")
    args.append(spec.image)
    args.extend(spec.args)
    return args


def port_binding_template(container_port: int) -> str:
    """Go template extracting the first host port bound to a TCP port."""
    return (
        "{{ index (index (index .HostConfig.PortBindings "
        f'"{container_port}/tcp") 0) "HostPort" }}}}'
    )


class DockerCLI(ProcessRuntime):
    """Wrapper for the docker command-line tool."""

    def __init__(self, binary: str = "docker", timeout: float = 60.0):
        """Initialize docker wrapper.

        Args:
            binary: Name or path of the docker compatible CLI
            timeout: Timeout for a single CLI invocation in seconds
        """
        self.binary = binary
        self.timeout = timeout

        logger.debug("docker_cli_initialized", binary=binary)

    def _run_command(self, args: list[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a docker command.

        Args:
            args: Command arguments
            check: Raise exception on non-zero exit code

        Returns:
            CompletedProcess instance

        Raises:
            ProcessRuntimeError: If command fails
        """
        cmd = [self.binary] + args

        logger.debug("running_docker_command", command=" ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=check,
                timeout=self.timeout,
            )

            logger.debug("docker_command_completed", returncode=result.returncode)

            return result

        except subprocess.CalledProcessError as e:
            logger.debug(
                "docker_command_failed",
                command=" ".join(cmd),
                returncode=e.returncode,
                stderr=e.stderr,
            )
            raise ProcessRuntimeError(
                f"{self.binary} {args[0]} failed: {(e.stderr or e.stdout or '').strip()}",
                returncode=e.returncode,
                stdout=e.stdout or "",
                stderr=e.stderr or "",
            ) from e
        except subprocess.TimeoutExpired as e:
            logger.error("docker_command_timed_out", command=" ".join(cmd), timeout=self.timeout)
            raise ProcessRuntimeError(
                f"{self.binary} {args[0]} timed out after {self.timeout:g} seconds"
            ) from e
        except FileNotFoundError as e:
            logger.error("docker_not_found", binary=self.binary)
            raise ProcessRuntimeError(
                f"{self.binary} command not found. Please install a container runtime."
            ) from e

    def run(self, spec: ContainerSpec) -> str:
        """Start a detached container.

        Args:
            spec: Container specification

        Returns:
            Container ID reported by docker

        Raises:
            ProcessRuntimeError: If the container cannot be started
        """
        result = self._run_command(build_run_args(spec))
        container_id = result.stdout.strip()

        logger.debug("container_started", name=spec.name, container_id=container_id)
        return container_id

    def published_port(self, name: str, container_port: int) -> int | None:
        """Get the host port a container publishes for a TCP port.

        Args:
            name: Container name
            container_port: Port inside the container

        Returns:
            Host port, or None if the container or binding does not exist
        """
        result = self._run_command(
            ["inspect", name, "-f", port_binding_template(container_port)], check=False
        )
        if result.returncode != 0:
            logger.debug("docker_inspect_failed", name=name, stderr=result.stderr.strip())
            return None

        try:
            port = int(result.stdout.strip())
        except ValueError:
            logger.debug("docker_inspect_unparsable", name=name, output=result.stdout.strip())
            return None

        return port or None

    def exists(self, name: str) -> bool:
        """Check whether a container with this name exists.

        Args:
            name: Container name

        Returns:
            True if the container exists
        """
        try:
            result = self._run_command(["inspect", "--type=container", name], check=False)
        except ProcessRuntimeError:
            return False
        return result.returncode == 0

    def stop(self, name: str) -> None:
        """Stop a container.

        Args:
            name: Container name

        Raises:
            ProcessRuntimeError: If docker fails to stop it
        """
        self._run_command(["stop", name])
        logger.debug("container_stopped", name=name)

    def remove(self, name: str) -> None:
        """Force-remove a container.

        Args:
            name: Container name

        Raises:
            ProcessRuntimeError: If docker fails to remove it
        """
        self._run_command(["container", "rm", name, "-f"])
        logger.debug("container_removed", name=name)

    def ping(self) -> bool:
        """Check whether docker is installed and the daemon answers.

        Returns:
            True if ``docker ps`` succeeds
        """
        try:
            result = self._run_command(["ps"], check=False)
        except ProcessRuntimeError:
            return False
        return result.returncode == 0
