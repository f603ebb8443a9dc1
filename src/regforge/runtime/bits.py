from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from regforge.runtime.checks import debug_assert

Bounds = Tuple[int, int]  # inclusive (start, end)


@dataclass(frozen=True)
class IntType:
    bits: int
    signed: bool = False

    @property
    def name(self) -> str:
        return f"{'i' if self.signed else 'u'}{self.bits}"

    @property
    def size(self) -> int:
        """Width in bytes."""
        return self.bits // 8

    @property
    def mask(self) -> int:
        return (1 << self.bits) - 1

    @property
    def min(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else self.mask

    def wrap(self, value: int) -> int:
        """Truncate ``value`` to this width (two's complement when signed)."""
        value &= self.mask
        if self.signed and value >> (self.bits - 1):
            value -= 1 << self.bits
        return value

    def to_unsigned(self, value: int) -> int:
        return value & self.mask

    def __repr__(self) -> str:
        return self.name.upper()


U8 = IntType(8)
U16 = IntType(16)
U32 = IntType(32)
U64 = IntType(64)
U128 = IntType(128)
I8 = IntType(8, True)
I16 = IntType(16, True)
I32 = IntType(32, True)
I64 = IntType(64, True)
I128 = IntType(128, True)

UNSIGNED = (U8, U16, U32, U64)
ALL_TYPES = (U8, U16, U32, U64, U128, I8, I16, I32, I64, I128)


def mask_for_size(size: int) -> int:
    """All-ones mask for an access of ``size`` bytes."""
    return (1 << (size * 8)) - 1


def mask_for(start: int, end: int) -> int:
    """Contiguous ones over the inclusive bit range ``start..=end``."""
    return ((1 << max(0, end - start + 1)) - 1) << start


def width_for(nbits: int) -> IntType | None:
    """Smallest unsigned type holding ``nbits`` bits, or None past 64."""
    for t in UNSIGNED:
        if t.bits >= nbits:
            return t
    return None


def get_bit(value: int, index: int, width: IntType = U32) -> bool:
    debug_assert(
        0 <= index < width.bits,
        f"Bit '{index}' is out of range for type '{width.name}' of {width.bits} bits",
    )
    return (width.to_unsigned(value) >> index) & 1 == 1


def set_bit(value: int, index: int, flag: bool, width: IntType = U32) -> int:
    debug_assert(
        0 <= index < width.bits,
        f"Bit '{index}' is out of range for type '{width.name}' of {width.bits} bits",
    )
    raw = width.to_unsigned(value)
    if flag:
        raw |= 1 << index
    else:
        raw &= ~(1 << index)
    return width.wrap(raw)


def _check_bounds(bounds: Bounds, width: IntType) -> Tuple[int, int]:
    start, end = bounds
    debug_assert(
        0 <= start <= end < width.bits,
        f"Bit range {start}..={end} is invalid for type '{width.name}' of {width.bits} bits",
    )
    return start, end


def get_bit_range(value: int, bounds: Bounds, width: IntType = U32) -> int:
    """Bits ``start..=end`` of ``value``, shifted down so bit ``start`` is bit 0.

    The result is always non-negative, even for signed widths.
    """
    start, end = _check_bounds(bounds, width)
    raw = width.to_unsigned(value) & mask_for(start, end)
    return raw >> start


def set_bit_range(value: int, bounds: Bounds, new_bits: int, width: IntType = U32) -> int:
    """Replace bits ``start..=end`` of ``value`` with ``new_bits``."""
    start, end = _check_bounds(bounds, width)
    span = end - start + 1
    debug_assert(
        0 <= new_bits < (1 << span),
        f"Value 0x{new_bits:X} does not fit in {span} bits ({start}..={end})",
    )
    mask = mask_for(start, end)
    raw = width.to_unsigned(value)
    raw = (raw & ~mask) | ((new_bits << start) & mask)
    return width.wrap(raw)
