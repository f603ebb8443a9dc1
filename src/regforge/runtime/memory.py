from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Literal, Optional

from regforge.runtime.bits import mask_for_size
from regforge.utils.logger import get_logger

log = get_logger(__name__)

AccessType = Literal["r", "w"]


class Memory:
    """Something register handles can load from and store to."""

    def read(self, addr: int, size: int) -> int:  # noqa: D401
        """Read an unsigned little-endian value of ``size`` bytes."""
        raise NotImplementedError

    def write(self, addr: int, size: int, value: int) -> None:  # noqa: D401
        """Write the low ``size`` bytes of ``value``."""
        raise NotImplementedError


class BufferMemory(Memory):
    """A plain bytearray mapped at ``base``, standing in for device storage."""

    def __init__(self, base: int, size: int):
        if size <= 0:
            raise ValueError("size must be positive")
        self.base = base
        self.size = size
        self.data = bytearray(size)

    @classmethod
    def words(cls, base: int, count: int, word_size: int = 4) -> "BufferMemory":
        return cls(base, count * word_size)

    @property
    def end(self) -> int:
        return self.base + self.size

    def _offset(self, addr: int, size: int) -> int:
        off = addr - self.base
        if off < 0 or off + size > self.size:
            raise KeyError(f"access 0x{addr:08X} size={size} outside 0x{self.base:08X}-0x{self.end:08X}")
        return off

    def read(self, addr: int, size: int) -> int:
        off = self._offset(addr, size)
        return int.from_bytes(self.data[off : off + size], "little", signed=False)

    def write(self, addr: int, size: int, value: int) -> None:
        off = self._offset(addr, size)
        self.data[off : off + size] = (value & mask_for_size(size)).to_bytes(size, "little")

    def word(self, index: int, word_size: int = 4) -> int:
        return self.read(self.base + index * word_size, word_size)

    def set_word(self, index: int, value: int, word_size: int = 4) -> None:
        self.write(self.base + index * word_size, word_size, value)

    def dump_words(self, word_size: int = 4) -> list[int]:
        return [self.word(i, word_size) for i in range(self.size // word_size)]


@dataclass(frozen=True)
class Region:
    name: str
    base: int
    end: int  # exclusive
    memory: Memory

    def contains(self, addr: int) -> bool:
        return self.base <= addr < self.end


@dataclass(frozen=True)
class Access:
    op: AccessType
    addr: int
    size: int
    value: int


class MemoryBus(Memory):
    """Routes accesses to named regions by address.

    With ``mmio_log_enabled`` every access is logged; with ``history_enabled``
    accesses are also kept in ``history`` so callers can count them.
    """

    def __init__(self, history_size: int = 1024):
        self._regions: list[Region] = []
        self.mmio_log_enabled = False
        self.history_enabled = False
        self.history: Deque[Access] = deque(maxlen=history_size)

    @property
    def regions(self) -> tuple[Region, ...]:
        return tuple(self._regions)

    def map(self, name: str, base: int, size: int, memory: Optional[Memory] = None) -> Memory:
        end = base + size
        for r in self._regions:
            if base < r.end and r.base < end:
                raise ValueError(f"region {name} 0x{base:08X}-0x{end:08X} overlaps {r.name}")
        if memory is None:
            memory = BufferMemory(base, size)
        self._regions.append(Region(name=name, base=base, end=end, memory=memory))
        self._regions.sort(key=lambda r: r.base)
        log.debug("mapped %s at 0x%08X-0x%08X", name, base, end)
        return memory

    def find_region(self, addr: int) -> Optional[Region]:
        for r in self._regions:
            if r.contains(addr):
                return r
        return None

    def _region(self, addr: int) -> Region:
        r = self.find_region(addr)
        if r is None:
            raise KeyError(f"no region for addr 0x{addr:08X}")
        return r

    def _record(self, op: AccessType, addr: int, size: int, value: int) -> None:
        if self.history_enabled:
            self.history.append(Access(op=op, addr=addr, size=size, value=value))

    def read(self, addr: int, size: int) -> int:
        r = self._region(addr)
        val = r.memory.read(addr, size)
        self._record("r", addr, size, val)
        if self.mmio_log_enabled:
            log.info("MMIO R  %s+0x%X [0x%08X size=%d] -> 0x%X", r.name, addr - r.base, addr, size, val)
        return val

    def write(self, addr: int, size: int, value: int) -> None:
        r = self._region(addr)
        if self.mmio_log_enabled:
            log.info("MMIO W  %s+0x%X [0x%08X size=%d] <- 0x%X", r.name, addr - r.base, addr, size, value)
        self._record("w", addr, size, value)
        r.memory.write(addr, size, value)

    def clear_history(self) -> None:
        self.history.clear()
