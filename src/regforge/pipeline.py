from __future__ import annotations

import types
from pathlib import Path
from typing import Iterable, Optional

from regforge.analysis.analyzer import ExternalConstants, analyze
from regforge.analysis.model import DeviceModel
from regforge.codegen.generator import generate
from regforge.codegen.loader import load_source
from regforge.config import GeneratorOptions
from regforge.dsl.model import Constant, DeviceSpec
from regforge.dsl.parser import parse_constants, parse_device
from regforge.dsl.schema import load_schema
from regforge.utils.logger import get_logger

log = get_logger(__name__)


def read_spec(path: Path, word_bits: int = 32) -> DeviceSpec:
    if path.suffix.lower() == ".json":
        return load_schema(path, word_bits)
    return parse_device(path.read_text(encoding="utf-8"), str(path), word_bits)


def read_constants(paths: Iterable[Path]) -> list[Constant]:
    out: list[Constant] = []
    for p in paths:
        consts = parse_constants(p.read_text(encoding="utf-8"), str(p))
        log.info("loaded %d constants from %s", len(consts), p)
        out.extend(consts)
    return out


def build_model(text: str, options: GeneratorOptions = GeneratorOptions(),
                constants: ExternalConstants = None) -> DeviceModel:
    spec = parse_device(text, options.source_name, options.word_bits)
    return analyze(spec, options.word_bits, constants)


def compile_text(text: str, options: GeneratorOptions = GeneratorOptions(),
                 constants: ExternalConstants = None) -> str:
    """DSL text in, accessor module source out."""
    return generate(build_model(text, options, constants), options)


def compile_spec(spec: DeviceSpec, options: GeneratorOptions = GeneratorOptions(),
                 constants: ExternalConstants = None) -> str:
    return generate(analyze(spec, options.word_bits, constants), options)


def build_device(text: str, options: GeneratorOptions = GeneratorOptions(),
                 constants: ExternalConstants = None, module_name: Optional[str] = None) -> type:
    """Compile and load in one step, returning the generated container class."""
    module = build_module(text, options, constants, module_name)
    return getattr(module, options.class_name)


def build_module(text: str, options: GeneratorOptions = GeneratorOptions(),
                 constants: ExternalConstants = None, module_name: Optional[str] = None) -> types.ModuleType:
    source = compile_text(text, options, constants)
    return load_source(source, module_name or f"regforge_{options.class_name.lower()}", options.source_name)
