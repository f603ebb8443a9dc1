from __future__ import annotations

from typing import List

from regforge.analysis.model import DeviceModel, RegisterEntry, ResolvedField
from regforge.config import GeneratorOptions
from regforge.codegen.writer import CodeWriter
from regforge.dsl.model import AccessPolicy
from regforge.errors import AnalysisError
from regforge.runtime.handles import handle_for
from regforge.utils.logger import get_logger

log = get_logger(__name__)

def to_hex_str(v: int, digits: int = 0) -> str:
    return f"0x{v:0{digits}X}"


def _word_const(model: DeviceModel) -> str:
    return model.word_type.name.upper()


def _hex(model: DeviceModel, v: int) -> str:
    return to_hex_str(v, model.word_type.bits // 4)


# ---- naming


def getter_name(f: ResolvedField) -> str:
    if f.policy is AccessPolicy.READ_WRITE_CLEAR:
        return f"is_{f.name}_active"
    if f.policy is AccessPolicy.READ_WRITE_ONE_SHOT:
        return f"is_{f.name}_pending"
    return f"get_{f.name}"


def setter_name(f: ResolvedField) -> str:
    if f.policy is AccessPolicy.READ_WRITE_CLEAR:
        return f"clear_{f.name}"
    if f.policy is AccessPolicy.READ_WRITE_ONE_SHOT:
        return f"activate_{f.name}"
    return f"set_{f.name}"


def accessor_names(f: ResolvedField) -> List[str]:
    out = []
    if f.policy.readable:
        out.append(getter_name(f))
    if f.policy.writable:
        out.append(setter_name(f))
    return out


def _location(f: ResolvedField) -> str:
    if f.single:
        return f"Bit {f.start} of ``{f.register}``"
    return f"Bits {f.start}..={f.end} of ``{f.register}``"


def _field_doc(f: ResolvedField, summary: str) -> List[str]:
    lines = list(f.docs) if f.docs else [summary]
    lines.append("")
    kind = "bool" if f.single else f"{f.value_type.name}, {f.width} bits"
    lines.append(f"{_location(f)} ({f.policy.value}, {kind}).")
    return lines


# ---- emitters


def emit_preamble(w: CodeWriter, model: DeviceModel, opts: GeneratorOptions) -> None:
    w.docstring([
        f"Register accessors for ``{opts.class_name}``.",
        "",
        f"Generated by regforge from {opts.source_name}. Do not edit.",
    ])
    w.line()
    types = sorted({_word_const(model)} | {f.value_type.name.upper() for f in model.fields if f.value_type},
                   key=lambda n: int(n[1:]))
    prims = []
    if any(f.single and f.policy.readable for f in model.fields):
        prims.append("get_bit")
    if any(not f.single and f.policy.readable for f in model.fields):
        prims.append("get_bit_range")
    if any(f.single and f.policy.writable for f in model.fields):
        prims.append("set_bit")
    if any(not f.single and f.policy.writable for f in model.fields):
        prims.append("set_bit_range")
    handles = sorted({handle_for(r.capability).__name__ for r in model.registers})

    w.line(f"from regforge.runtime.bits import {', '.join(types + prims)}")
    w.line("from regforge.runtime.checks import debug_assert")
    w.line(f"from regforge.runtime.handles import {', '.join(handles)}")
    w.line("from regforge.runtime.memory import Memory")
    w.line()
    w.line(f'__all__ = ["{opts.class_name}"]')


def emit_constants(w: CodeWriter, model: DeviceModel) -> None:
    if model.ports:
        w.line("PORTS = (" + " ".join(f"{to_hex_str(p, 8)}," for p in model.ports) + ")")
    else:
        w.line("PORTS = ()")
    w.line("REGISTER_OFFSETS = {")
    w.indent()
    for r in model.registers:
        w.line(f'"{r.name}": {to_hex_str(r.offset, 4)},')
    w.outdent()
    w.line("}")
    w.line()

    for f in model.fields:
        p = f.constant_prefix
        if f.single:
            w.line(f"{p}_BIT = {f.start}")
        else:
            w.line(f"{p}_BIT_START = {f.start}")
            w.line(f"{p}_BIT_END = {f.end}")
            w.line(f"{p}_MASK = {_hex(model, f.mask)}")
    w.line()

    # Bits of write-1 side-effect fields are forced to zero by every setter.
    for r in model.registers:
        w.line(f"{r.mask_constant} = {_hex(model, r.preserve_mask)}")


def emit_init(w: CodeWriter, model: DeviceModel, opts: GeneratorOptions) -> None:
    slots = ", ".join(f'"{r.name}"' for r in model.registers)
    w.line(f"__slots__ = ({slots},)")
    w.line()
    with w.block("def __init__(self, base_address: int, memory: Memory) -> None:"):
        if model.ports:
            w.line("debug_assert(")
            w.indent()
            w.line("base_address in self.PORTS,")
            w.line(f'f"0x{{base_address:08X}} is not a device port of {opts.class_name}",')
            w.outdent()
            w.line(")")
        word = _word_const(model)
        for r in model.registers:
            cls = handle_for(r.capability).__name__
            w.line(f"self.{r.name} = {cls}.new(memory, base_address, {to_hex_str(r.offset, 4)}, {word})")
    w.line()
    w.line("@classmethod")
    with w.block(f'def new(cls, base_address: int, memory: Memory) -> "{opts.class_name}":'):
        w.line("return cls(base_address, memory)")


def _read_for_write(w: CodeWriter, reg: RegisterEntry, var: str = "value") -> None:
    if reg.capability.readable:
        w.line(f"{var} = self.{reg.name}.read() & self.{reg.mask_constant}")
    else:
        # nothing to preserve on a write-only register
        w.line(f"{var} = 0")


def emit_getter(w: CodeWriter, model: DeviceModel, f: ResolvedField) -> None:
    word = _word_const(model)
    if f.single:
        summary = {
            AccessPolicy.READ_WRITE_CLEAR: f"Whether the {f.name} status bit is set.",
            AccessPolicy.READ_WRITE_ONE_SHOT: f"Whether {f.name} is still pending.",
        }.get(f.policy, f"Read the {f.name} flag.")
        with w.block(f"def {getter_name(f)}(self) -> bool:"):
            w.docstring(_field_doc(f, summary))
            w.line(f"return get_bit(self.{f.register}.read(), {f.start}, {word})")
    else:
        with w.block(f"def {getter_name(f)}(self) -> int:"):
            w.docstring(_field_doc(f, f"Read {f.name}."))
            w.line(f"return get_bit_range(self.{f.register}.read(), ({f.start}, {f.end}), {word})")


def emit_setter(w: CodeWriter, model: DeviceModel, f: ResolvedField) -> None:
    word = _word_const(model)
    reg = model.get_register(f.register)
    if f.policy.self_clearing:
        summary = (f"Clear {f.name} by writing 1 to it." if f.policy is AccessPolicy.READ_WRITE_CLEAR
                   else f"Trigger {f.name} by writing 1 to it.")
        with w.block(f"def {setter_name(f)}(self) -> None:"):
            w.docstring(_field_doc(f, summary))
            _read_for_write(w, reg)
            w.line(f"self.{reg.name}.write(set_bit(value, {f.start}, True, {word}))")
    elif f.single:
        with w.block(f"def {setter_name(f)}(self, flag: bool) -> None:"):
            w.docstring(_field_doc(f, f"Set or clear {f.name}."))
            _read_for_write(w, reg)
            w.line(f"self.{reg.name}.write(set_bit(value, {f.start}, flag, {word}))")
    else:
        with w.block(f"def {setter_name(f)}(self, bits: int) -> None:"):
            w.docstring(_field_doc(f, f"Write {f.name}."))
            w.line("debug_assert(")
            w.indent()
            w.line(f"0 <= bits <= {to_hex_str(f.max_value)},")
            w.line(f'f"{f.name} holds {f.width} bits, got 0x{{bits:X}}",')
            w.outdent()
            w.line(")")
            _read_for_write(w, reg)
            w.line(f"self.{reg.name}.write(set_bit_range(value, ({f.start}, {f.end}), bits, {word}))")


def emit_container(w: CodeWriter, model: DeviceModel, opts: GeneratorOptions) -> None:
    with w.block(f"class {opts.class_name}:"):
        w.docstring([
            f"Register block described by {opts.source_name}.",
            "",
            "Owns one handle per backing register. Setters do one read and one",
            "write and are not safe against concurrent access to the same register.",
        ])
        w.line()
        emit_constants(w, model)
        w.line()
        emit_init(w, model, opts)
        for f in model.fields:
            if f.policy.readable:
                w.line()
                emit_getter(w, model, f)
            if f.policy.writable:
                w.line()
                emit_setter(w, model, f)


def check_member_names(model: DeviceModel) -> None:
    """Register handles and accessors share one class namespace."""
    methods = {"new"}
    for f in model.fields:
        methods.update(accessor_names(f))
    for r in model.registers:
        if r.name in methods:
            raise AnalysisError(f"register attribute '{r.name}' collides with a generated method",
                                r.fields[0] if r.fields else None)


def generate(model: DeviceModel, opts: GeneratorOptions = GeneratorOptions()) -> str:
    """Emit the Python source of the accessor module for ``model``."""
    if opts.word_bits != model.word_type.bits:
        raise ValueError(f"options ask for {opts.word_bits}-bit words, model has {model.word_type.bits}")
    check_member_names(model)
    w = CodeWriter()
    emit_preamble(w, model, opts)
    w.line()
    w.line()
    emit_container(w, model, opts)
    src = w.text()
    log.info("generated %s: %d lines, %d accessors", opts.class_name, src.count("\n"),
             sum(len(accessor_names(f)) for f in model.fields))
    return src
