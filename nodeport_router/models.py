"""
nodeport_router.models
======================
Plain value types shared by the router client, the reconciler and the
Kubernetes watcher.

Ports are carried as decimal strings on ``Forward`` because the router's
forms are string-typed and the listing echoes them back verbatim.
"""

from dataclasses import dataclass, field

from .config import SERVICE_TYPE_NODE_PORT


def forward_name(namespace: str, name: str, port, node_port) -> str:
    """Rule label used as the matching key between desired and observed forwards."""
    return f"{namespace}-{name}-{port}-{node_port}"


@dataclass(frozen=True)
class Forward:
    device_name: str
    service_name: str
    ports: str
    device_port: str
    public_ip: str = ""
    # Only set on forwards scraped from the router listing
    delete_id: str = ""

    def same_rule(self, other: "Forward") -> bool:
        return (
            self.service_name == other.service_name
            and self.ports == other.ports
            and self.device_port == other.device_port
        )

    def __str__(self) -> str:
        return f"{self.service_name} ({self.ports} -> {self.device_name}:{self.device_port})"


@dataclass(frozen=True)
class ServicePort:
    port: int
    node_port: int = 0
    target_port: int = 0
    name: str = ""
    protocol: str = "TCP"

    @property
    def forwarded_port(self) -> int:
        """Target port, or the declared port when no numeric target port is set."""
        return self.target_port or self.port


@dataclass(frozen=True)
class Service:
    namespace: str
    name: str
    type: str = SERVICE_TYPE_NODE_PORT
    ports: tuple = ()

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def is_node_port(self) -> bool:
        return self.type == SERVICE_TYPE_NODE_PORT


ADDED = "ADDED"
MODIFIED = "MODIFIED"
DELETED = "DELETED"


@dataclass(frozen=True)
class ServiceEvent:
    kind: str
    service: Service
    # Previous spec, set for MODIFIED events only
    old: "Service | None" = field(default=None)


@dataclass(frozen=True)
class SessionState:
    """When the current router session was established (monotonic seconds)."""

    authenticated_since: "float | None" = None

    def is_fresh(self, max_age: float, now: float) -> bool:
        if self.authenticated_since is None:
            return False
        return now - self.authenticated_since <= max_age
