"""
This package runs commands and transfers files inside LXD containers by
driving the local lxc client. There is no socket or API protocol: every
operation is one lxc invocation.
"""

# __init__.py

__version__ = "0.1.0"

from .connection import Connection  # noqa: E402
from .errors import (  # noqa: E402
    ConnectError,
    FileError,
    TransportError,
    ValidationError,
)
from .models import ContainerInfo, RemoteInfo, Result, Target  # noqa: E402
from .transport import LXDTransport  # noqa: E402

__all__ = [
    "Connection",
    "ConnectError",
    "ContainerInfo",
    "FileError",
    "LXDTransport",
    "RemoteInfo",
    "Result",
    "Target",
    "TransportError",
    "ValidationError",
]
