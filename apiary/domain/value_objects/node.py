"""
Node Value Object

Architectural Intent:
- Immutable connection descriptor for one host of the hive
- Accepts DNS names and IPv4/IPv6 literals, a non-empty user and a port
  in 1-65535
- Opaque to the deployment executor; only RemoteHostPort adapters look inside
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_SSH_PORT = 22

# one RFC 1123 label
_LABEL_RE = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def is_valid_hostname(host: str) -> bool:
    """True for an IPv4/IPv6 literal or a dot-separated DNS name."""
    if not host or len(host) > 253:
        return False
    if _is_ip_literal(host):
        return True
    labels = host.split(".")
    # dotted quads that failed the IP check (300.1.1.1) are not names either
    if all(label.isdigit() for label in labels):
        return False
    return all(_LABEL_RE.match(label) for label in labels)


@dataclass(frozen=True)
class Node:
    host: str
    user: str = "root"
    port: int = DEFAULT_SSH_PORT

    def __post_init__(self) -> None:
        if not self.user:
            raise ValueError("Node user cannot be empty")
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be 1-65535, got {self.port}")
        if not is_valid_hostname(self.host):
            raise ValueError(f"Invalid hostname: {self.host!r}")

    @property
    def is_ipv6(self) -> bool:
        return ":" in self.host

    @property
    def ssh_target(self) -> str:
        """user@host as ssh and nix-copy-closure expect it."""
        host = f"[{self.host}]" if self.is_ipv6 else self.host
        return f"{self.user}@{host}"

    @property
    def ssh_port_option(self) -> Optional[str]:
        """Extra ssh option for non-default ports, for NIX_SSHOPTS."""
        if self.port == DEFAULT_SSH_PORT:
            return None
        return f"-p {self.port}"

    @property
    def is_root(self) -> bool:
        return self.user == "root"

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"

    @classmethod
    def parse(cls, text: str) -> "Node":
        """Build a Node from 'host', 'user@host:port' or 'user@[v6addr]:port'.

        A bare IPv6 address without brackets never carries a port.
        """
        user, sep, rest = text.strip().rpartition("@")
        if not sep:
            user = "root"

        host, port = rest, DEFAULT_SSH_PORT
        if rest.startswith("["):
            closing = rest.find("]")
            if closing == -1:
                raise ValueError(f"Unterminated IPv6 bracket in: {text}")
            host, tail = rest[1:closing], rest[closing + 1:]
            if tail.startswith(":"):
                port = int(tail[1:])
        elif rest.count(":") == 1:
            name, _, port_text = rest.partition(":")
            if port_text.isdigit():
                host, port = name, int(port_text)

        return cls(host=host, user=user, port=port)
