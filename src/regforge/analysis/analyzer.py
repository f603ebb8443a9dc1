from __future__ import annotations

import keyword
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from regforge.analysis.model import DeviceModel, RegisterEntry, ResolvedField
from regforge.config import WORD_SIZES
from regforge.dsl.model import Constant, DeviceSpec, FieldDecl, Path, PortRef
from regforge.errors import AnalysisError, ErrorKind
from regforge.runtime.bits import IntType, mask_for, width_for
from regforge.runtime.handles import Capability
from regforge.utils.logger import get_logger

log = get_logger(__name__)

ExternalConstants = Union[Mapping[str, int], Iterable[Constant], None]


class ConstantTable:
    """Symbolic constants keyed by path segments (``rro::CTRL`` -> ``("rro", "CTRL")``)."""

    def __init__(self) -> None:
        self._values: Dict[Tuple[str, ...], int] = {}

    def add(self, path: Path, value: int) -> None:
        prev = self._values.get(path.segments)
        if prev is not None and prev != value:
            log.warning("constant %s redefined: 0x%X -> 0x%X", path, prev, value)
        self._values[path.segments] = value

    def update(self, constants: ExternalConstants) -> None:
        if constants is None:
            return
        if isinstance(constants, Mapping):
            for k, v in constants.items():
                self.add(Path.parse(k), int(v))
        else:
            for c in constants:
                self.add(c.path, c.value)

    def resolve(self, path: Path) -> Optional[int]:
        value = self._values.get(path.segments)
        if value is not None or len(path.segments) > 1:
            return value
        # bare name: accept it when exactly one module defines it
        hits = [v for k, v in self._values.items() if k[-1] == path.last]
        return hits[0] if len(hits) == 1 else None

    def __len__(self) -> int:
        return len(self._values)


def _check_name(decl: FieldDecl, seen: Dict[str, FieldDecl], prefixes: Dict[str, FieldDecl]) -> None:
    if not decl.name.isidentifier() or keyword.iskeyword(decl.name):
        raise AnalysisError("name is not usable as an identifier", decl.name, ErrorKind.BAD_PARAM)
    if decl.name in seen:
        raise AnalysisError(f"declared twice (first on line {seen[decl.name].line})", decl.name)
    # constants are emitted upper-cased, so `A` and `a` would share `A_BIT`
    prefix = decl.name.upper()
    clash = prefixes.get(prefix)
    if clash is not None:
        raise AnalysisError(
            f"constant prefix {prefix} is already used by field {clash.name} (line {clash.line})",
            decl.name,
        )
    seen[decl.name] = decl
    prefixes[prefix] = decl


def resolve_field(decl: FieldDecl, word_type: IntType) -> ResolvedField:
    start, end = decl.bit.resolve(word_type.bits)

    if decl.bit.is_single:
        if start >= word_type.bits:
            raise AnalysisError(f"bit {start} is outside a {word_type.bits}-bit register", decl.name)
        value_type = None
    else:
        if start >= end:
            raise AnalysisError(f"bit range {decl.bit} is inverted or empty", decl.name)
        if end >= word_type.bits:
            raise AnalysisError(
                f"bit range {start}..={end} does not fit a {word_type.bits}-bit register", decl.name
            )
        if decl.policy.self_clearing:
            raise AnalysisError(
                f"{decl.policy.value} is only defined for single bits, not the range {decl.bit}",
                decl.name,
                ErrorKind.NOT_SUPPORTED,
            )
        value_type = width_for(end - start + 1)
        if value_type is None:
            raise AnalysisError(
                f"bit range {start}..={end} needs {end - start + 1} bits; at most 64 are supported",
                decl.name,
                ErrorKind.NOT_SUPPORTED,
            )

    return ResolvedField(
        name=decl.name,
        policy=decl.policy,
        register=decl.register_name,
        start=start,
        end=end,
        single=decl.bit.is_single,
        mask=mask_for(start, end),
        value_type=value_type,
        docs=decl.docs,
    )


def resolve_ports(ports: Iterable[PortRef], table: ConstantTable) -> Tuple[int, ...]:
    out: List[int] = []
    for p in ports:
        if isinstance(p, Path):
            value = table.resolve(p)
            if value is None:
                raise AnalysisError(f"device port {p} does not name a known constant")
            p = value
        if p in out:
            log.warning("device port 0x%X listed twice", p)
            continue
        out.append(p)
    return tuple(out)


def capability_for(fields: Iterable[ResolvedField]) -> Capability:
    fields = list(fields)
    readable = any(f.policy.readable for f in fields)
    writable = any(f.policy.writable for f in fields)
    if readable and writable:
        return Capability.READ_WRITE
    return Capability.READ_ONLY if readable else Capability.WRITE_ONLY


def preserve_mask(fields: Iterable[ResolvedField], word_type: IntType) -> int:
    """Bits that survive a read-modify-write: everything except write-1 side-effect bits."""
    union = 0
    for f in fields:
        if f.policy.self_clearing:
            union |= f.mask
    return ~union & word_type.mask


def analyze(
    spec: DeviceSpec,
    word_bits: int = 32,
    constants: ExternalConstants = None,
) -> DeviceModel:
    """Resolve a parsed description into registers, fields and masks."""
    if word_bits not in WORD_SIZES:
        raise AnalysisError(f"unsupported register width {word_bits}", kind=ErrorKind.NOT_SUPPORTED)
    if not spec.fields:
        raise AnalysisError(f"{spec.source} declares no fields")

    word_type = IntType(word_bits)
    table = ConstantTable()
    table.update(constants)
    table.update(spec.constants)

    ports = resolve_ports(spec.ports, table)
    if not ports:
        log.info("%s: no device ports declared, base address checks disabled", spec.source)

    seen: Dict[str, FieldDecl] = {}
    prefixes: Dict[str, FieldDecl] = {}
    fields: List[ResolvedField] = []
    paths: Dict[str, Path] = {}
    members: Dict[str, List[ResolvedField]] = {}

    for decl in spec.fields:
        _check_name(decl, seen, prefixes)
        rf = resolve_field(decl, word_type)
        fields.append(rf)

        first = paths.setdefault(rf.register, decl.path)
        if first != decl.path:
            log.warning("field %s: register %s already bound to %s, ignoring %s",
                        decl.name, rf.register, first, decl.path)

        siblings = members.setdefault(rf.register, [])
        for other in siblings:
            if other.mask & rf.mask:
                log.warning("fields %s and %s overlap in register %s", other.name, rf.name, rf.register)
        siblings.append(rf)

    registers: List[RegisterEntry] = []
    field_constants = {f"{f.constant_prefix}_MASK" for f in fields if not f.single}
    for name, path in paths.items():
        if not name.isidentifier():
            raise AnalysisError(f"register name {name} is not usable as an identifier",
                                members[name][0].name, ErrorKind.BAD_PARAM)
        if keyword.iskeyword(name):
            raise AnalysisError(f"register name {name} is a reserved word", members[name][0].name)
        if f"{name.upper()}_SET_MASK" in field_constants:
            raise AnalysisError(f"constant {name.upper()}_SET_MASK would be defined twice",
                                members[name][0].name)
        offset = table.resolve(path)
        if offset is None:
            owner = members[name][0].name
            raise AnalysisError(f"backing register {path} does not name a known constant", owner)
        regs_fields = members[name]
        registers.append(
            RegisterEntry(
                name=name,
                path=path,
                offset=offset,
                capability=capability_for(regs_fields),
                preserve_mask=preserve_mask(regs_fields, word_type),
                fields=tuple(f.name for f in regs_fields),
            )
        )

    log.info("%s: %d fields over %d registers", spec.source, len(fields), len(registers))
    return DeviceModel(
        ports=ports,
        registers=tuple(registers),
        fields=tuple(fields),
        word_type=word_type,
        source=spec.source,
    )
