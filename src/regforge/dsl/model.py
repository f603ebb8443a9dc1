from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class AccessPolicy(Enum):
    READ_WRITE = "RW"
    READ_ONLY = "RO"
    WRITE_ONLY = "WO"
    READ_WRITE_CLEAR = "RW1C"  # write 1 to clear, reads as status
    READ_WRITE_ONE_SHOT = "RW1O"  # write 1 to trigger, reads as pending

    @classmethod
    def from_keyword(cls, keyword: str) -> Optional["AccessPolicy"]:
        for p in cls:
            if p.value == keyword:
                return p
        return None

    @property
    def readable(self) -> bool:
        return self is not AccessPolicy.WRITE_ONLY

    @property
    def writable(self) -> bool:
        return self is not AccessPolicy.READ_ONLY

    @property
    def self_clearing(self) -> bool:
        """Writing 1 has a side effect, so these bits are never written back as read."""
        return self in (AccessPolicy.READ_WRITE_CLEAR, AccessPolicy.READ_WRITE_ONE_SHOT)


@dataclass(frozen=True)
class Bound:
    value: int
    included: bool = True


@dataclass(frozen=True)
class BitSpec:
    """A single bit (``index``) or a range with optional bounds.

    An omitted bound is ``None`` (unbounded).
    """

    index: Optional[int] = None
    start: Optional[Bound] = None
    end: Optional[Bound] = None

    @classmethod
    def single(cls, index: int) -> "BitSpec":
        return cls(index=index)

    @classmethod
    def range(cls, start: Optional[Bound], end: Optional[Bound]) -> "BitSpec":
        return cls(start=start, end=end)

    @property
    def is_single(self) -> bool:
        return self.index is not None

    def resolve(self, word_bits: int = 32) -> Tuple[int, int]:
        """Inclusive ``(start, end)`` for a register of ``word_bits`` bits."""
        if self.index is not None:
            return self.index, self.index

        if self.start is None:
            start = 0
        elif self.start.included:
            start = self.start.value
        else:
            start = self.start.value + 1

        if self.end is None:
            end = word_bits - 1
        elif self.end.included:
            end = self.end.value
        else:
            end = self.end.value - 1
        return start, end

    def __str__(self) -> str:
        if self.index is not None:
            return str(self.index)
        lo = "" if self.start is None else str(self.start.value)
        if self.end is None:
            return f"{lo}.."
        return f"{lo}{'..=' if self.end.included else '..'}{self.end.value}"


@dataclass(frozen=True)
class Path:
    segments: Tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> "Path":
        parts = tuple(p for p in text.replace("::", ".").split(".") if p)
        if not parts:
            raise ValueError(f"empty path: {text!r}")
        return cls(parts)

    @property
    def last(self) -> str:
        return self.segments[-1]

    @property
    def register_name(self) -> str:
        return self.last.lower()

    def __str__(self) -> str:
        return "::".join(self.segments)


PortRef = Union[int, Path]


@dataclass(frozen=True)
class Constant:
    path: Path
    value: int
    docs: Tuple[str, ...] = ()
    line: int = 0


@dataclass(frozen=True)
class FieldDecl:
    name: str
    bit: BitSpec
    policy: AccessPolicy
    path: Path
    docs: Tuple[str, ...] = ()
    line: int = 0

    @property
    def register_name(self) -> str:
        return self.path.register_name


@dataclass(frozen=True)
class DeviceSpec:
    ports: Tuple[PortRef, ...] = ()
    fields: Tuple[FieldDecl, ...] = ()
    constants: Tuple[Constant, ...] = ()
    source: str = "<dsl>"
