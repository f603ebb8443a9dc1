from __future__ import annotations

from typing import Optional

from unicorn import Uc, UC_ARCH_ARM, UC_MODE_THUMB, UC_MODE_MCLASS, UcError
from unicorn.unicorn_const import UC_PROT_READ, UC_PROT_WRITE

from regforge.runtime.bits import mask_for_size
from regforge.runtime.memory import Memory
from regforge.utils.logger import get_logger

log = get_logger(__name__)

PAGE = 0x1000


class UnicornMemory(Memory):
    """Register storage inside a unicorn emulated address space.

    Pass an existing ``uc`` to share memory with a running emulation;
    otherwise a Cortex-M engine is created just for its address space.
    """

    def __init__(self, uc: Optional[Uc] = None):
        self.uc = uc if uc is not None else Uc(UC_ARCH_ARM, UC_MODE_THUMB | UC_MODE_MCLASS)
        self._mapped: list[tuple[int, int]] = []

    def map(self, base: int, size: int) -> None:
        start = base & ~(PAGE - 1)
        end = (base + size + PAGE - 1) & ~(PAGE - 1)
        try:
            self.uc.mem_map(start, end - start, UC_PROT_READ | UC_PROT_WRITE)
        except UcError as e:
            raise ValueError(f"cannot map 0x{start:08X}-0x{end:08X}: {e}") from e
        self._mapped.append((start, end))
        log.info("Mapped MMIO: 0x%08X-0x%08X (%d bytes)", start, end, end - start)

    def read(self, addr: int, size: int) -> int:
        try:
            data = self.uc.mem_read(addr, size)
        except UcError as e:
            raise KeyError(f"unmapped read 0x{addr:08X} size={size}") from e
        return int.from_bytes(bytes(data), "little", signed=False)

    def write(self, addr: int, size: int, value: int) -> None:
        data = (value & mask_for_size(size)).to_bytes(size, "little")
        try:
            self.uc.mem_write(addr, data)
        except UcError as e:
            raise KeyError(f"unmapped write 0x{addr:08X} size={size}") from e
