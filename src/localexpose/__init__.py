"""Local Kubernetes exposure (localexpose).

Make a virtual cluster API server that lives inside a local container runtime
reachable from the host, and tear the exposure down again.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
