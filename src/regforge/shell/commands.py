from __future__ import annotations

from dataclasses import dataclass

from regforge.analysis.model import DeviceModel, ResolvedField
from regforge.codegen.generator import getter_name, setter_name
from regforge.runtime.memory import MemoryBus
from regforge.utils.hexdump import hexdump, wordtable


def _int(s: str) -> int:
    return int(s, 0)


@dataclass
class Commands:
    device: object
    model: DeviceModel
    bus: MemoryBus
    base: int

    def _field(self, name: str) -> ResolvedField:
        try:
            return self.model.get_field(name)
        except KeyError:
            raise KeyError(f"unknown field: {name}") from None

    def cmd_fields(self, argv: list[str]) -> str:
        lines = []
        for f in self.model.fields:
            bits = f"{f.start}" if f.single else f"{f.start}..={f.end}"
            lines.append(f"{f.name:24} {f.policy.value:5} {f.register:16} {bits}")
        return "\n".join(lines) if lines else "(no fields)"

    def cmd_regs(self, argv: list[str]) -> str:
        lines = []
        for r in self.model.registers:
            handle = getattr(self.device, r.name)
            if r.capability.readable:
                val = f"0x{handle.read():08X}"
            else:
                val = "(write-only)"
            lines.append(f"{r.name:16} +0x{r.offset:04X} [0x{handle.address:08X}] {r.capability.value} = {val}")
        return "\n".join(lines)

    def cmd_get(self, argv: list[str]) -> str:
        if len(argv) != 1:
            return "usage: get <field>"
        f = self._field(argv[0])
        if not f.policy.readable:
            return f"{f.name} is write-only"
        val = getattr(self.device, getter_name(f))()
        if f.single:
            return f"{f.name} = {int(val)}"
        return f"{f.name} = 0x{val:X} ({val})"

    def cmd_set(self, argv: list[str]) -> str:
        if not argv:
            return "usage: set <field> [value]"
        f = self._field(argv[0])
        if not f.policy.writable:
            return f"{f.name} is read-only"
        setter = getattr(self.device, setter_name(f))
        if f.policy.self_clearing:
            setter()
            return f"{setter_name(f)}()"
        if len(argv) != 2:
            return "usage: set <field> <value>"
        val = _int(argv[1])
        setter(bool(val) if f.single else val)
        return f"{f.name} <- 0x{val:X}"

    def cmd_poke(self, argv: list[str]) -> str:
        if len(argv) != 2:
            return "usage: poke <offset> <value>"
        addr = self.base + _int(argv[0])
        val = _int(argv[1])
        size = self.model.word_type.size
        self.bus.write(addr, size, val)
        return f"[0x{addr:08X}] <- 0x{val:0{size * 2}X}"

    def cmd_mem(self, argv: list[str]) -> str:
        if len(argv) not in (1, 2):
            return "usage: mem <offset> [len] | mem words"
        if argv[0] == "words":
            size = self.model.word_type.size
            words = [self.bus.read(self.base + off, size) for off in range(0, self._span(), size)]
            return wordtable(words, base=self.base, step=size)
        addr = self.base + _int(argv[0])
        ln = _int(argv[1]) if len(argv) == 2 else 16
        data = bytes(self.bus.read(addr + i, 1) for i in range(ln))
        return hexdump(data, base=addr)

    def cmd_log(self, argv: list[str]) -> str:
        if len(argv) != 1 or argv[0].lower() not in ("on", "off"):
            return "usage: log on|off"
        self.bus.mmio_log_enabled = (argv[0].lower() == "on")
        return f"mmio log = {'on' if self.bus.mmio_log_enabled else 'off'}"

    def _span(self) -> int:
        return max(r.offset for r in self.model.registers) + self.model.word_type.size
