"""Custom exceptions for localexpose."""


class LocalExposeError(Exception):
    """Base exception for all localexpose errors."""


class ConfigurationError(LocalExposeError):
    """Configuration-related errors."""


class InvalidServerError(ConfigurationError):
    """Candidate server address is not a valid scheme://host:port URL."""


class CredentialError(LocalExposeError):
    """A kubeconfig snapshot cannot be turned into an API client."""


class KubernetesError(LocalExposeError):
    """Kubernetes operation failed."""


class ConnectionTimeoutError(LocalExposeError):
    """A reachability poll exceeded its deadline.

    Attributes:
        server: Server URL that was polled
        timeout: Deadline in seconds
        last_error: Last underlying verification error, if any
    """

    def __init__(self, server: str, timeout: float, last_error: Exception | None = None):
        """Initialize connection timeout error.

        Args:
            server: Server URL that was polled
            timeout: Deadline in seconds
            last_error: Last underlying verification error
        """
        message = f"test connection: timed out after {timeout:g}s waiting for {server}"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.server = server
        self.timeout = timeout
        self.last_error = last_error


class ProcessRuntimeError(LocalExposeError):
    """Container runtime CLI invocation failed.

    Attributes:
        returncode: Exit code of the CLI, None if it could not be started
        stdout: Captured standard output
        stderr: Captured standard error
    """

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ):
        """Initialize process runtime error.

        Args:
            message: Error message
            returncode: Exit code of the CLI
            stdout: Captured standard output
            stderr: Captured standard error
        """
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
