from __future__ import annotations

import io
import logging
import sys

import pytest

from regforge import config
from regforge.codegen.loader import load_source
from regforge.config import GeneratorOptions, configure, get_settings, validation
from regforge.dsl.schema import parse_schema
from regforge.errors import AnalysisError, ErrorKind, ParseError, RegforgeError
from regforge.pipeline import build_module, compile_spec, read_constants, read_spec
from regforge.runtime.checks import debug_assert, validation_enabled
from regforge.utils.logger import get_logger, setup_logging


def test_validation_context_restores():
    with validation(False):
        assert not validation_enabled()
        debug_assert(False, "ignored")
        with validation(True):
            with pytest.raises(AssertionError, match="boom"):
                debug_assert(False, "boom")
        assert not get_settings().validate
    assert get_settings().validate


def test_configure_replaces_fields():
    before = get_settings()
    try:
        s = configure(word_bits=16)
        assert s.word_bits == 16 and s.validate == before.validate
    finally:
        configure(word_bits=before.word_bits)


@pytest.mark.parametrize("raw,expected", [("1", True), ("yes", True), ("0", False), ("off", False)])
def test_env_flag(monkeypatch, raw, expected):
    monkeypatch.setenv(config.VALIDATE_ENV, raw)
    assert config._env_flag(config.VALIDATE_ENV, not expected) is expected


def test_env_flag_default(monkeypatch):
    monkeypatch.delenv(config.VALIDATE_ENV, raising=False)
    assert config._env_flag(config.VALIDATE_ENV, True) is True


def test_error_hierarchy():
    e = ParseError("bad", 3, 7, "x.regs")
    assert str(e) == "x.regs:3:7: bad"
    assert isinstance(e, ValueError) and isinstance(e, RegforgeError)
    assert str(ParseError("bad")) == "<dsl>: bad"

    a = AnalysisError("too wide", "f", ErrorKind.NOT_SUPPORTED)
    assert str(a) == "field 'f': too wide"
    assert a.kind is ErrorKind.NOT_SUPPORTED
    assert AnalysisError("x").kind is ErrorKind.INVALID


def test_load_source_registers_module():
    name = "regforge_test_loaded"
    try:
        mod = load_source("VALUE = 3\n", name, register=True)
        assert sys.modules[name] is mod
        assert mod.VALUE == 3
    finally:
        sys.modules.pop(name, None)


def test_build_module_exposes_class():
    mod = build_module("device_ports();\n#[bit(0, RW, R)] a", constants={"R": 0})
    assert mod.__all__ == ["Registers"]
    assert mod.Registers.A_BIT == 0


def test_read_spec_and_constants(tmp_path):
    consts = tmp_path / "map.regs"
    consts.write_text("mod mmio { const UART = 0x4004_2000; }", encoding="utf-8")
    regs = tmp_path / "uart.regs"
    regs.write_text("device_ports(mmio::UART);\n#[bit(0, RW, CTRL)] en", encoding="utf-8")

    spec = read_spec(regs)
    assert spec.source == str(regs)
    loaded = read_constants([consts])
    assert [str(c.path) for c in loaded] == ["mmio::UART"]


def test_setup_logging_replaces_its_own_handler():
    root = logging.getLogger()
    saved, level = root.handlers[:], root.level
    try:
        first = setup_logging("INFO", stream=io.StringIO())
        buf = io.StringIO()
        second = setup_logging("INFO", quiet=True, stream=buf)
        assert first not in root.handlers and second in root.handlers
        get_logger("regforge.test").info("hello")
        assert buf.getvalue() == "hello\n"
    finally:
        root.handlers[:] = saved
        root.setLevel(level)


def test_compile_spec_from_json_form():
    spec = parse_schema({
        "constants": {"CTRL": 4},
        "fields": [{"name": "go", "bit": 0, "access": "RW1O", "register": "CTRL"}],
    })
    src = compile_spec(spec, GeneratorOptions(class_name="Dma"))
    assert "class Dma:" in src
    assert "def activate_go(self) -> None:" in src
