"""
Data models shared across lxdx: targets, lxc listing records and action results.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse

URI_SCHEME = "lxd"


@dataclass
class Target:
    """A container an action is directed at."""

    name: str
    host: str
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def safe_name(self) -> str:
        """Display name used in messages and logs."""
        return self.name

    @classmethod
    def from_uri(cls, uri: str, options: Optional[Dict[str, Any]] = None) -> "Target":
        """
        Build a target from an ``lxd://[remote/]container`` URI.

        A remote segment, when present, becomes the ``service-url`` option.

        Examples:
            >>> Target.from_uri("lxd://web-1").host
            'web-1'
            >>> Target.from_uri("lxd://lab/web-1").options["service-url"]
            'lab'
        """
        parsed = urlparse(uri)
        if parsed.scheme != URI_SCHEME:
            raise ValueError(f"Target URI must use the {URI_SCHEME}:// scheme: {uri}")

        options = dict(options or {})
        path = parsed.path.strip("/")
        if path:
            options["service-url"] = parsed.netloc
            host = path
        else:
            host = parsed.netloc

        return cls(name=uri, host=host, options=options)


@dataclass
class RemoteInfo:
    """One entry of ``lxc remote list``."""

    name: str
    addr: str = ""
    protocol: str = ""
    public: bool = False
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ContainerInfo:
    """One entry of ``lxc list``."""

    name: str
    status: str = ""
    type: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Result:
    """Outcome of a transport action against one target."""

    target: str
    action: str
    object: Optional[str] = None
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_code in (None, 0)

    def to_dict(self) -> Dict[str, Any]:
        value: Dict[str, Any] = {}
        if self.exit_code is not None:
            value.update(
                {
                    "stdout": self.stdout,
                    "stderr": self.stderr,
                    "exit_code": self.exit_code,
                }
            )
        if self.error is not None:
            value["_error"] = self.error
        return {
            "target": self.target,
            "action": self.action,
            "object": self.object,
            "status": "success" if self.ok else "failure",
            "value": value,
        }
