from __future__ import annotations

import pytest

from regforge.codegen.generator import accessor_names, generate
from regforge.codegen.writer import CodeWriter
from regforge.config import GeneratorOptions
from regforge.errors import AnalysisError
from regforge.pipeline import build_model, compile_text

CTRL = """
mod rro { const CTRL = 0x00; const STATUS = 0x04; const FIFO = 0x08; }
device_ports(0x40001000, 0x40002000);

/// Transfer complete.
#[bit(3, RW1C, rro::CTRL)]
done,

#[bit(8..=15, RW, rro::CTRL)]
level,

#[bit(0, RW1O, rro::CTRL)]
kick,

#[bit(0, RO, rro::STATUS)]
busy,

#[bit(0..=7, WO, rro::FIFO)]
fifo,
"""


@pytest.fixture
def source() -> str:
    return compile_text(CTRL, GeneratorOptions(class_name="Ctrl", source_name="ctrl.regs"))


def test_source_compiles(source):
    compile(source, "ctrl.py", "exec")


def test_output_is_deterministic(source):
    assert compile_text(CTRL, GeneratorOptions(class_name="Ctrl", source_name="ctrl.regs")) == source


def test_emits_constants(source):
    assert "DONE_BIT = 3" in source
    assert "LEVEL_BIT_START = 8" in source
    assert "LEVEL_BIT_END = 15" in source
    assert "LEVEL_MASK = 0x0000FF00" in source
    assert "CTRL_SET_MASK = 0xFFFFFFF6" in source
    assert "STATUS_SET_MASK = 0xFFFFFFFF" in source
    assert "PORTS = (0x40001000, 0x40002000,)" in source
    assert '"fifo": 0x0008,' in source


def test_emits_one_handle_per_register(source):
    assert '__slots__ = ("ctrl", "status", "fifo",)' in source
    assert "self.ctrl = ReadWrite.new(memory, base_address, 0x0000, U32)" in source
    assert "self.status = ReadOnly.new(memory, base_address, 0x0004, U32)" in source
    assert "self.fifo = WriteOnly.new(memory, base_address, 0x0008, U32)" in source
    assert source.count("ReadWrite.new(") == 1


def test_setters_read_masked(source):
    assert "value = self.ctrl.read() & self.CTRL_SET_MASK" in source
    # write-only registers are built from zero
    assert "value = 0\n" in source
    assert "self.fifo.read()" not in source


def test_accessor_names(source):
    for name in ("is_done_active", "clear_done", "get_level", "set_level", "is_kick_pending",
                 "activate_kick", "get_busy", "set_fifo"):
        assert f"def {name}(self" in source
    assert "def set_busy" not in source
    assert "def get_fifo" not in source


def test_docs_are_carried(source):
    assert '"""Transfer complete.' in source
    assert "Bits 8..=15 of ``ctrl`` (RW, u8, 8 bits)." in source


def test_port_check_only_with_ports():
    src = compile_text("device_ports();\n#[bit(0, RW, R)] a", constants={"R": 0})
    assert "PORTS = ()" in src
    assert "base_address in self.PORTS" not in src


def test_imports_only_what_is_used():
    src = compile_text("device_ports();\n#[bit(0, RO, R)] a", constants={"R": 0})
    assert "from regforge.runtime.bits import U32, get_bit\n" in src
    assert "from regforge.runtime.handles import ReadOnly\n" in src


def test_word_bits_must_match_model():
    model = build_model("device_ports();\n#[bit(0, RW, R)] a", constants={"R": 0})
    with pytest.raises(ValueError, match="16-bit"):
        generate(model, GeneratorOptions(word_bits=16))


def test_register_name_cannot_shadow_a_method():
    with pytest.raises(AnalysisError, match="collides"):
        compile_text("device_ports();\n#[bit(0, RW, rro::GET_A)] a", constants={"rro::GET_A": 0})


@pytest.mark.parametrize("kwargs", [{"word_bits": 12}, {"class_name": "not valid"}])
def test_generator_options_validate(kwargs):
    with pytest.raises(ValueError):
        GeneratorOptions(**kwargs)


def test_sixteen_bit_output():
    src = compile_text("device_ports();\n#[bit(0..=7, RW, R)] lo",
                       GeneratorOptions(word_bits=16), {"R": 2})
    assert "self.r = ReadWrite.new(memory, base_address, 0x0002, U16)" in src
    assert "LO_MASK = 0x00FF" in src
    assert "R_SET_MASK = 0xFFFF" in src


def test_accessor_names_follow_policy():
    model = build_model(CTRL)
    assert accessor_names(model.get_field("done")) == ["is_done_active", "clear_done"]
    assert accessor_names(model.get_field("busy")) == ["get_busy"]
    assert accessor_names(model.get_field("fifo")) == ["set_fifo"]


def test_writer_docstrings_and_blocks():
    w = CodeWriter()
    with w.block("def f():"):
        w.docstring(['say "hi"'])
        w.docstring(["one line"])
        w.line("return 1")
    w.line()
    assert w.text() == (
        'def f():\n'
        '    """say "hi"\n'
        '    """\n'
        '    """one line"""\n'
        '    return 1\n'
    )
