from __future__ import annotations

import pytest

from regforge.config import GeneratorOptions
from regforge.pipeline import build_device, build_model
from regforge.runtime.memory import MemoryBus
from regforge.shell.commands import Commands
from regforge.shell.shell import RegShell

UART = 0x4004_2000
TEXT = """
mod rro { const CTRL = 0x0; const TX = 0x4; }
device_ports(0x40042000);
#[bit(0, RW, rro::CTRL)] enable,
#[bit(4..=7, RW, rro::CTRL)] parity,
#[bit(2, RW1C, rro::CTRL)] overrun,
#[bit(0..=7, WO, rro::TX)] tx,
"""


@pytest.fixture
def shell() -> RegShell:
    opts = GeneratorOptions(class_name="Uart")
    bus = MemoryBus()
    bus.map("uart", UART, 8)
    dev = build_device(TEXT, opts).new(UART, bus)
    return RegShell(Commands(device=dev, model=build_model(TEXT, opts), bus=bus, base=UART))


def test_intro_names_the_device(shell):
    assert shell.intro.startswith("Uart at 0x40042000")


def test_set_and_get(shell, capsys):
    shell.run_script("set parity 0x5; get parity; set enable 1; get enable")
    out = capsys.readouterr().out.splitlines()
    assert out == ["parity <- 0x5", "parity = 0x5 (5)", "enable <- 0x1", "enable = 1"]


def test_write_only_and_usage(shell, capsys):
    shell.run_script("get tx; set tx; set; set parity 0x10")
    out = capsys.readouterr().out
    assert "tx is write-only" in out
    assert "usage: set <field> <value>" in out
    assert "usage: set <field> [value]" in out
    assert "error: parity holds 4 bits" in out


def test_regs_shows_write_only(shell, capsys):
    shell.onecmd("regs")
    out = capsys.readouterr().out
    assert "(write-only)" in out


def test_log_switch(shell, capsys):
    shell.onecmd("log on")
    assert shell.cmds.bus.mmio_log_enabled
    shell.onecmd("log maybe")
    assert "usage: log on|off" in capsys.readouterr().out


def test_quoting_errors(shell, capsys):
    shell.onecmd('get "enable')
    assert "parse error" in capsys.readouterr().out


def test_completion(shell):
    assert shell.completenames("se") == ["set"]
    assert shell.completedefault("pa", "get pa", 4, 6) == ["parity"]
    assert shell.completedefault("", "mem ", 4, 4) == []


def test_help_and_exit(shell, capsys):
    shell.onecmd("help")
    assert "commands: fields, get, log, mem, poke, regs, set, exit" in capsys.readouterr().out
    assert shell.onecmd("exit") is True
    assert shell.onecmd("quit") is True


def test_poke_and_words_follow_register_width(capsys):
    text = "device_ports();\n#[bit(0..=7, RW, CTRL)] level, #[bit(0, RO, STAT)] ready"
    opts = GeneratorOptions(class_name="Small", word_bits=16)
    consts = {"CTRL": 0, "STAT": 2}
    bus = MemoryBus()
    bus.map("small", UART, 4)
    dev = build_device(text, opts, consts).new(UART, bus)
    sh = RegShell(Commands(device=dev, model=build_model(text, opts, consts), bus=bus, base=UART))

    sh.run_script("poke 0x2 0xABCD; mem words")
    assert capsys.readouterr().out.splitlines() == [
        "[0x40042002] <- 0xABCD",
        "+0x0000 [0x40042000] = 0x0000",
        "+0x0002 [0x40042002] = 0xABCD",
    ]
    assert bus.read(UART, 4) == 0xABCD_0000
