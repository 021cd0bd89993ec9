"""Kubeconfig snapshots used to attempt API connections.

A snapshot wraps the plain kubeconfig mapping (``clusters``, ``users``,
``contexts``, ``current-context``) understood by the kubernetes Python client.
Derived variants are always deep copies. ``relax_tls`` is the only in-place
mutation and must only be applied once a relaxed copy has been verified.
"""

from __future__ import annotations

import base64
import copy
from pathlib import Path
from typing import Any

import yaml

from localexpose.core.exceptions import ConfigurationError, CredentialError

CA_DATA_KEY = "certificate-authority-data"
INSECURE_KEY = "insecure-skip-tls-verify"

# file reference -> inline base64 key
CLUSTER_FILE_KEYS = {"certificate-authority": CA_DATA_KEY}
USER_FILE_KEYS = {
    "client-certificate": "client-certificate-data",
    "client-key": "client-key-data",
}
UNSUPPORTED_USER_KEYS = ("exec", "auth-provider")


class KubeCredentialSnapshot:
    """Copy of a kubeconfig's cluster, user and context maps."""

    def __init__(self, data: dict[str, Any], base_dir: Path | None = None):
        """Initialize snapshot.

        Args:
            data: Kubeconfig mapping, copied on construction
            base_dir: Directory relative certificate paths are resolved against
        """
        self._data = copy.deepcopy(data)
        self.base_dir = base_dir
        self._data.setdefault("clusters", [])
        self._data.setdefault("users", [])
        self._data.setdefault("contexts", [])
        self._data.setdefault("current-context", "")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KubeCredentialSnapshot:
        """Create a snapshot from a kubeconfig mapping."""
        return cls(data)

    @classmethod
    def from_file(cls, path: str | Path, context: str | None = None) -> KubeCredentialSnapshot:
        """Load a snapshot from a kubeconfig file.

        Args:
            path: Path to kubeconfig file
            context: Context to select instead of the file's current-context

        Returns:
            KubeCredentialSnapshot instance

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        kubeconfig_path = Path(path).expanduser()

        if not kubeconfig_path.exists():
            raise ConfigurationError(f"Kubeconfig file not found: {kubeconfig_path}")

        try:
            with kubeconfig_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to load kubeconfig: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid kubeconfig: {kubeconfig_path}")

        snapshot = cls(data, base_dir=kubeconfig_path.parent)
        if context:
            snapshot._data["current-context"] = context
        return snapshot

    @property
    def current_context(self) -> str:
        """Name of the selected context."""
        return self._data.get("current-context") or ""

    @property
    def clusters(self) -> list[dict[str, Any]]:
        """Copy of the cluster entries."""
        return copy.deepcopy(self._data["clusters"])

    def _context_entry(self) -> dict[str, Any] | None:
        for entry in self._data["contexts"]:
            if entry.get("name") == self.current_context:
                return entry.get("context") or {}
        return None

    def current_cluster_server(self) -> str | None:
        """Return the raw server URL of the current context's cluster."""
        context = self._context_entry()
        if context is None:
            return None

        for entry in self._data["clusters"]:
            if entry.get("name") == context.get("cluster"):
                return (entry.get("cluster") or {}).get("server")
        return None

    def with_server(self, server: str) -> KubeCredentialSnapshot:
        """Return a copy with every cluster's server rewritten."""
        rewritten = KubeCredentialSnapshot(self._data, self.base_dir)
        for entry in rewritten._data["clusters"]:
            entry.setdefault("cluster", {})["server"] = server
        return rewritten

    def relaxed(self) -> KubeCredentialSnapshot:
        """Return a copy with CA data cleared and TLS verification disabled."""
        relaxed = KubeCredentialSnapshot(self._data, self.base_dir)
        relaxed.relax_tls()
        return relaxed

    def relax_tls(self) -> None:
        """Clear CA data and disable TLS verification on every cluster, in place."""
        for entry in self._data["clusters"]:
            cluster = entry.setdefault("cluster", {})
            cluster.pop(CA_DATA_KEY, None)
            cluster[INSECURE_KEY] = True

    def _named_entry(self, section: str, name: str | None) -> dict[str, Any]:
        for entry in self._data[section]:
            if entry.get("name") == name:
                return copy.deepcopy(entry)
        raise CredentialError(f"Kubeconfig has no {section[:-1]} named {name!r}")

    def _inline_files(self, fields: dict[str, Any], file_keys: dict[str, str]) -> None:
        for file_key, data_key in file_keys.items():
            path = fields.pop(file_key, None)
            if not path or fields.get(data_key):
                continue

            file_path = Path(path).expanduser()
            if not file_path.is_absolute() and self.base_dir is not None:
                file_path = self.base_dir / file_path
            try:
                content = file_path.read_bytes()
            except OSError as e:
                raise CredentialError(f"Failed to read {file_key} {file_path}: {e}") from e
            fields[data_key] = base64.b64encode(content).decode("ascii")

    def flattened(self) -> KubeCredentialSnapshot:
        """Return a self-contained copy usable on another machine or container.

        The copy holds only the current context with its cluster and user.
        Certificate and key files are read into the matching ``*-data`` keys.

        Returns:
            Flattened KubeCredentialSnapshot

        Raises:
            CredentialError: If the context is incomplete, a referenced file
                cannot be read, or the user authenticates through a plugin
        """
        context = self._named_entry("contexts", self.current_context)
        context_fields = context.get("context") or {}
        cluster = self._named_entry("clusters", context_fields.get("cluster"))
        user = self._named_entry("users", context_fields.get("user"))

        cluster_fields = cluster["cluster"] = cluster.get("cluster") or {}
        user_fields = user["user"] = user.get("user") or {}

        for key in UNSUPPORTED_USER_KEYS:
            if user_fields.get(key):
                raise CredentialError(
                    f"User {user.get('name')!r} authenticates with {key}, which cannot be "
                    "used inside the proxy container"
                )

        self._inline_files(cluster_fields, CLUSTER_FILE_KEYS)
        self._inline_files(user_fields, USER_FILE_KEYS)

        return KubeCredentialSnapshot(
            {
                "clusters": [cluster],
                "users": [user],
                "contexts": [context],
                "current-context": self.current_context,
            }
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a deep copy of the kubeconfig mapping."""
        return copy.deepcopy(self._data)

    def to_yaml(self) -> str:
        """Serialize the snapshot as kubeconfig YAML."""
        data = self.to_dict()
        data.setdefault("apiVersion", "v1")
        data.setdefault("kind", "Config")
        return yaml.safe_dump(data, default_flow_style=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KubeCredentialSnapshot):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"KubeCredentialSnapshot(current_context={self.current_context!r})"
