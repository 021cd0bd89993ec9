"""Tests for kubeconfig snapshots."""

import base64
from pathlib import Path

import pytest
import yaml

from localexpose.core.exceptions import ConfigurationError, CredentialError
from localexpose.core.kubeconfig import CA_DATA_KEY, INSECURE_KEY, KubeCredentialSnapshot
from tests.conftest import make_file_referenced_kubeconfig, make_kubeconfig


@pytest.fixture
def raw_config():
    """Raw kubeconfig mapping with two clusters."""
    data = make_kubeconfig("minikube", "https://192.168.49.2:8443")
    data["clusters"].append(
        {"name": "other", "cluster": {"server": "https://10.0.0.1:6443", CA_DATA_KEY: "b3RoZXI="}}
    )
    return data


class TestKubeCredentialSnapshot:
    """Tests for KubeCredentialSnapshot."""

    def test_construction_copies_input(self, raw_config):
        """Test later changes to the source mapping do not leak in."""
        snapshot = KubeCredentialSnapshot(raw_config)
        raw_config["clusters"][0]["cluster"]["server"] = "https://changed:1"

        assert snapshot.current_cluster_server() == "https://192.168.49.2:8443"

    def test_current_cluster_server(self, raw_config):
        """Test the server of the current context's cluster is returned."""
        snapshot = KubeCredentialSnapshot(raw_config)

        assert snapshot.current_context == "minikube"
        assert snapshot.current_cluster_server() == "https://192.168.49.2:8443"

    def test_current_cluster_server_unknown_context(self, raw_config):
        """Test an unknown current context has no server."""
        raw_config["current-context"] = "missing"

        assert KubeCredentialSnapshot(raw_config).current_cluster_server() is None

    def test_with_server_rewrites_copy_only(self, raw_config):
        """Test every cluster of the copy is rewritten, the original is not."""
        snapshot = KubeCredentialSnapshot(raw_config)
        rewritten = snapshot.with_server("https://127.0.0.1:11443")

        assert {c["cluster"]["server"] for c in rewritten.clusters} == {"https://127.0.0.1:11443"}
        assert snapshot == KubeCredentialSnapshot(raw_config)

    def test_relaxed_clears_ca_on_copy_only(self, raw_config):
        """Test relaxed copies drop CA data and skip TLS verification."""
        snapshot = KubeCredentialSnapshot(raw_config)
        relaxed = snapshot.relaxed()

        for entry in relaxed.clusters:
            assert CA_DATA_KEY not in entry["cluster"]
            assert entry["cluster"][INSECURE_KEY] is True
        for entry in snapshot.clusters:
            assert CA_DATA_KEY in entry["cluster"]
            assert INSECURE_KEY not in entry["cluster"]

    def test_relax_tls_in_place(self, raw_config):
        """Test relax_tls mutates the snapshot itself."""
        snapshot = KubeCredentialSnapshot(raw_config)
        snapshot.relax_tls()

        assert all(entry["cluster"][INSECURE_KEY] for entry in snapshot.clusters)

    def test_clusters_returns_copy(self, raw_config):
        """Test callers cannot mutate the snapshot through clusters."""
        snapshot = KubeCredentialSnapshot(raw_config)
        snapshot.clusters[0]["cluster"]["server"] = "https://changed:1"

        assert snapshot.current_cluster_server() == "https://192.168.49.2:8443"

    def test_from_file_with_context_override(self, raw_config, tmp_path: Path):
        """Test loading a kubeconfig file and selecting a context."""
        path = tmp_path / "config"
        path.write_text(yaml.safe_dump(raw_config))

        snapshot = KubeCredentialSnapshot.from_file(path, context="other")

        assert snapshot.current_context == "other"

    def test_from_file_missing(self, tmp_path: Path):
        """Test a missing kubeconfig raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="not found"):
            KubeCredentialSnapshot.from_file(tmp_path / "missing")

    def test_from_file_not_a_mapping(self, tmp_path: Path):
        """Test a kubeconfig that is not a mapping is rejected."""
        path = tmp_path / "config"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError, match="Invalid kubeconfig"):
            KubeCredentialSnapshot.from_file(path)

    def test_to_yaml_round_trips(self, raw_config):
        """Test YAML output loads back to the same snapshot."""
        snapshot = KubeCredentialSnapshot(raw_config)

        assert KubeCredentialSnapshot(yaml.safe_load(snapshot.to_yaml())) == snapshot


class TestFlattened:
    """Tests for self-contained kubeconfig copies."""

    def test_inlines_certificate_files(self, tmp_path: Path):
        """Test file references become base64 data, relative ones against the file's dir."""
        path = tmp_path / "config"
        path.write_text(yaml.safe_dump(make_file_referenced_kubeconfig(tmp_path)))

        flat = KubeCredentialSnapshot.from_file(path).flattened()
        data = flat.to_dict()

        cluster = data["clusters"][0]["cluster"]
        assert "certificate-authority" not in cluster
        assert base64.b64decode(cluster[CA_DATA_KEY]) == b"ca-cert"
        assert cluster["server"] == "https://192.168.49.2:8443"

        user = data["users"][0]["user"]
        assert "client-certificate" not in user
        assert "client-key" not in user
        assert base64.b64decode(user["client-certificate-data"]) == b"client-cert"
        assert base64.b64decode(user["client-key-data"]) == b"client-key"

    def test_keeps_only_current_context(self, raw_config):
        """Test unrelated clusters are dropped."""
        flat = KubeCredentialSnapshot(raw_config).flattened()

        assert [entry["name"] for entry in flat.clusters] == ["minikube"]
        assert flat.current_context == "minikube"
        assert flat.to_dict()["users"][0]["user"] == {"token": "test-token"}

    def test_source_is_unchanged(self, tmp_path: Path):
        """Test flattening works on a copy."""
        snapshot = KubeCredentialSnapshot(make_file_referenced_kubeconfig(tmp_path), base_dir=tmp_path)
        before = snapshot.to_dict()

        snapshot.flattened()

        assert snapshot.to_dict() == before

    def test_missing_file(self, tmp_path: Path):
        """Test an unreadable certificate file is a credential error."""
        data = make_file_referenced_kubeconfig(tmp_path)
        (tmp_path / "ca.crt").unlink()

        with pytest.raises(CredentialError, match="certificate-authority"):
            KubeCredentialSnapshot(data, base_dir=tmp_path).flattened()

    @pytest.mark.parametrize(
        "auth",
        [
            {"exec": {"apiVersion": "client.authentication.k8s.io/v1beta1", "command": "aws"}},
            {"auth-provider": {"name": "oidc"}},
        ],
    )
    def test_plugin_users_rejected(self, raw_config, auth):
        """Test credentials that need a local plugin cannot be flattened."""
        raw_config["users"][0]["user"] = auth

        with pytest.raises(CredentialError, match=next(iter(auth))):
            KubeCredentialSnapshot(raw_config).flattened()

    def test_unknown_context(self, raw_config):
        """Test a current context without an entry is a credential error."""
        raw_config["current-context"] = "missing"

        with pytest.raises(CredentialError, match="missing"):
            KubeCredentialSnapshot(raw_config).flattened()
