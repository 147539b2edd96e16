"""
Typed result structures of the discovery configuration queries.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping


@dataclass(frozen=True)
class ConfigurationType:
    """Catalog entry describing a class of driver configuration."""
    id: int
    name: str
    driver: str
    port: str
    # Read-only view, left out of the hash
    default_attributes: Mapping[str, str] = field(default_factory=dict, hash=False)
    secw_document_types: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "default_attributes", MappingProxyType(dict(self.default_attributes)))
        object.__setattr__(self, "secw_document_types", frozenset(self.secw_document_types))


@dataclass(frozen=True)
class ConfigurationRecord:
    id: int
    type_id: int
    priority: int
    is_working: bool
    is_enabled: bool


@dataclass
class DeviceConfigurationInfo:
    """Merged view of one configuration, rebuilt on every query."""
    id: int
    attributes: Dict[str, str] = field(default_factory=dict)
    secw_document_ids: FrozenSet[str] = frozenset()
