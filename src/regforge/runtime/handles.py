from __future__ import annotations

from enum import Enum

from regforge.errors import ContractViolation, NullPointerError
from regforge.runtime.bits import IntType, U32
from regforge.runtime.memory import Memory


class Capability(Enum):
    READ_ONLY = "RO"
    WRITE_ONLY = "WO"
    READ_WRITE = "RW"

    @property
    def readable(self) -> bool:
        return self is not Capability.WRITE_ONLY

    @property
    def writable(self) -> bool:
        return self is not Capability.READ_ONLY


class RegisterHandle:
    """One register at ``base + offset``, owned by exactly one container.

    Every ``read``/``write`` is a single access to the backing memory. Any
    read-modify-write composition belongs to the caller.
    """

    capability: Capability = Capability.READ_WRITE
    __slots__ = ("_memory", "_address", "_offset", "_payload")

    def __init__(self, memory: Memory, address: int, offset: int, payload: IntType = U32):
        self._memory = memory
        self._address = address
        self._offset = offset
        self._payload = payload

    @classmethod
    def new(cls, memory: Memory, base: int, offset: int, payload: IntType = U32):
        address = base + offset
        if address == 0:
            raise NullPointerError(f"{cls.__name__} register at offset 0x{offset:X} resolves to a null address")
        return cls(memory, address, offset, payload)

    @property
    def address(self) -> int:
        return self._address

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def payload(self) -> IntType:
        return self._payload

    def read(self) -> int:
        if not self.capability.readable:
            raise ContractViolation(f"Cannot read from write-only register at 0x{self._address:08X}")
        raw = self._memory.read(self._address, self._payload.size)
        return self._payload.wrap(raw)

    def write(self, value: int) -> None:
        if not self.capability.writable:
            raise ContractViolation(f"Cannot write to read-only register at 0x{self._address:08X}")
        self._memory.write(self._address, self._payload.size, self._payload.to_unsigned(value))

    def __copy__(self):
        raise TypeError(f"{type(self).__name__} handles are exclusively owned and cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError(f"{type(self).__name__} handles are exclusively owned and cannot be copied")

    def __reduce_ex__(self, protocol):
        raise TypeError(f"{type(self).__name__} handles cannot be pickled")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(0x{self._address:08X}, {self._payload!r})"


class ReadOnly(RegisterHandle):
    capability = Capability.READ_ONLY
    __slots__ = ()


class WriteOnly(RegisterHandle):
    capability = Capability.WRITE_ONLY
    __slots__ = ()


class ReadWrite(RegisterHandle):
    capability = Capability.READ_WRITE
    __slots__ = ()


HANDLE_TYPES: dict[Capability, type[RegisterHandle]] = {
    Capability.READ_ONLY: ReadOnly,
    Capability.WRITE_ONLY: WriteOnly,
    Capability.READ_WRITE: ReadWrite,
}


def handle_for(capability: Capability) -> type[RegisterHandle]:
    return HANDLE_TYPES[capability]
