"""
Service data model.

A service is identified on the network by ``host:port:name``. Anything
else a publisher wants to share (protocol, version, path...) rides along
in ``extra`` and is carried over the wire untouched.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

# Fields that make up the identity key
IDENTITY_FIELDS = ('host', 'port', 'name')

MAX_PORT = 65535


@dataclass
class ServiceDescriptor:
    """A network service as announced on the group."""
    host: Optional[str]
    port: Optional[int]
    name: Optional[str]
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        """True when host, port and name are all usable."""
        return bool(self.host) and bool(self.name) and _valid_port(self.port)

    @property
    def key(self) -> str:
        """Identity key ``host:port:name``."""
        return identity_key(self.host, self.port, self.name)

    def copy(self) -> 'ServiceDescriptor':
        return copy.deepcopy(self)

    def with_host(self, host: str) -> 'ServiceDescriptor':
        """Return a copy with ``host`` replaced."""
        return ServiceDescriptor(
            host=host,
            port=self.port,
            name=self.name,
            extra=copy.deepcopy(self.extra),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into the wire representation."""
        data = copy.deepcopy(self.extra)
        data['host'] = self.host
        data['port'] = self.port
        data['name'] = self.name
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ServiceDescriptor':
        """Build from a wire/user mapping. Missing fields become None."""
        extra = {
            k: copy.deepcopy(v) for k, v in data.items()
            if k not in IDENTITY_FIELDS
        }
        return cls(
            host=_coerce_str(data.get('host')),
            port=_coerce_port(data.get('port')),
            name=_coerce_str(data.get('name')),
            extra=extra,
        )


@dataclass
class ServiceRecord:
    """Registry entry: a descriptor plus whether this process announced it."""
    descriptor: ServiceDescriptor
    owned_locally: bool = False

    @property
    def key(self) -> str:
        return self.descriptor.key

    def copy(self) -> 'ServiceRecord':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'owned_locally': self.owned_locally,
            'descriptor': self.descriptor.to_dict(),
        }


DescriptorLike = Union[ServiceDescriptor, Mapping[str, Any]]


def as_descriptor(value: DescriptorLike) -> Optional[ServiceDescriptor]:
    """Accept a ServiceDescriptor or a plain mapping; None for anything else."""
    if isinstance(value, ServiceDescriptor):
        return value
    if isinstance(value, Mapping):
        return ServiceDescriptor.from_dict(value)
    return None


def identity_key(host: Any, port: Any, name: Any) -> str:
    return f"{host}:{port}:{name}"


def _valid_port(port: Any) -> bool:
    return isinstance(port, int) and not isinstance(port, bool) and 0 < port <= MAX_PORT


def _coerce_port(value: Any) -> Optional[int]:
    # JSON peers may send the port as a string
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if _valid_port(value) else None
    if isinstance(value, str):
        digits = value.strip()
        # ASCII only: str.isdigit() also accepts "²" and other digits int() rejects
        if digits.isascii() and digits.isdigit() and len(digits) <= len(str(MAX_PORT)):
            port = int(digits)
            return port if _valid_port(port) else None
    return None


def _coerce_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None
