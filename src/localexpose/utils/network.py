"""Network helpers."""

import socket
from urllib.parse import urlsplit

from localexpose.core.exceptions import InvalidServerError


def pick_free_loopback_port() -> int:
    """Find an available TCP port on 127.0.0.1.

    Binding to port 0 lets the kernel pick a free ephemeral port. Another
    process may claim the port before the proxy container binds it; the runtime
    then fails to start the container and the error surfaces to the caller.

    Returns:
        An available port number on the loopback interface
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def validate_server(server: str) -> None:
    """Check that a server address has the form scheme://host:port.

    Args:
        server: Candidate server address

    Raises:
        InvalidServerError: If the address is malformed
    """
    try:
        parts = urlsplit(server)
        port = parts.port
    except ValueError as e:
        raise InvalidServerError(f"Invalid server address {server!r}: {e}") from e

    if parts.scheme not in ("http", "https") or not parts.hostname or port is None:
        raise InvalidServerError(f"Invalid server address {server!r}: expected scheme://host:port")


def server_host(server: str) -> str | None:
    """Return the host part of a server URL, without the port."""
    try:
        return urlsplit(server).hostname
    except ValueError:
        return None
