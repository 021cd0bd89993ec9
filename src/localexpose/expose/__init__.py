"""Expose virtual cluster API servers of local distributions to the host."""

from localexpose.expose.background import BackgroundProxy
from localexpose.expose.detect import detect_cluster_type
from localexpose.expose.dispatcher import ExposureDispatcher
from localexpose.expose.naming import (
    background_proxy_name,
    parse_vcluster_context,
    vcluster_context_name,
)
from localexpose.expose.proxy_manager import ProxyManager
from localexpose.expose.teardown import TeardownCoordinator
from localexpose.expose.verifier import ConnectivityVerifier

__all__ = [
    "BackgroundProxy",
    "ConnectivityVerifier",
    "ExposureDispatcher",
    "ProxyManager",
    "TeardownCoordinator",
    "background_proxy_name",
    "detect_cluster_type",
    "parse_vcluster_context",
    "vcluster_context_name",
]
