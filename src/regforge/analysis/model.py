from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from regforge.dsl.model import AccessPolicy, Path
from regforge.runtime.bits import IntType
from regforge.runtime.handles import Capability


@dataclass(frozen=True)
class ResolvedField:
    name: str
    policy: AccessPolicy
    register: str
    start: int
    end: int
    single: bool
    mask: int
    value_type: Optional[IntType]  # None for single bits (bool)
    docs: Tuple[str, ...] = ()

    @property
    def width(self) -> int:
        return self.end - self.start + 1

    @property
    def max_value(self) -> int:
        return (1 << self.width) - 1

    @property
    def constant_prefix(self) -> str:
        return self.name.upper()


@dataclass(frozen=True)
class RegisterEntry:
    name: str
    path: Path
    offset: int
    capability: Capability
    preserve_mask: int
    fields: Tuple[str, ...] = ()

    @property
    def mask_constant(self) -> str:
        return f"{self.name.upper()}_SET_MASK"


@dataclass(frozen=True)
class DeviceModel:
    ports: Tuple[int, ...]
    registers: Tuple[RegisterEntry, ...]
    fields: Tuple[ResolvedField, ...]
    word_type: IntType
    source: str = "<dsl>"
    _by_register: Dict[str, RegisterEntry] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_register", {r.name: r for r in self.registers})

    def get_register(self, name: str) -> RegisterEntry:
        return self._by_register[name]

    def get_field(self, name: str) -> ResolvedField:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)
