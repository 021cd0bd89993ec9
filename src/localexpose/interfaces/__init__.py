"""Interface definitions for localexpose."""

from localexpose.interfaces.process_runtime import ContainerSpec, ProcessRuntime

__all__ = [
    "ContainerSpec",
    "ProcessRuntime",
]
