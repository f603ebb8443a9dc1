from __future__ import annotations

from typing import Iterable


def _printable(b: int) -> str:
    return chr(b) if 0x20 <= b < 0x7F else "."


def hexdump(data: bytes, base: int = 0, width: int = 16) -> str:
    """Offset, hex bytes and ASCII, ``width`` bytes per line."""
    out = []
    for off in range(0, len(data), width):
        row = data[off : off + width]
        hexpart = row.hex(" ").upper()
        out.append(f"{base + off:08X}  {hexpart:<{width * 3}}  {''.join(map(_printable, row))}")
    return "\n".join(out)


def wordtable(words: Iterable[int], base: int = 0, step: int = 4) -> str:
    """One register word per line: offset, absolute address, value."""
    return "\n".join(
        f"+0x{i * step:04X} [0x{base + i * step:08X}] = 0x{w:0{step * 2}X}" for i, w in enumerate(words)
    )
