from __future__ import annotations

import json
from pathlib import Path as FsPath
from typing import Any, Dict, List

from regforge.dsl.lexer import TokenType, parse_int, tokenize
from regforge.dsl.model import AccessPolicy, BitSpec, Constant, DeviceSpec, FieldDecl, Path, PortRef
from regforge.dsl.parser import POLICY_KEYWORDS, Parser
from regforge.errors import ParseError

# JSON form of a device description:
#
# {
#   "constants": { "rro::CTRL": "0x00", "mmio::UART_0": "0x4004_2000" },
#   "ports": [ "mmio::UART_0", 1073881088 ],
#   "fields": [
#     { "name": "enable", "bit": 0, "access": "RW", "register": "rro::CTRL",
#       "doc": [ "Enable the peripheral." ] },
#     { "name": "divider", "bit": "8..=15", "access": "RW", "register": "rro::CTRL" }
#   ]
# }


def require_str(v: Any, ctx: str) -> str:
    if not isinstance(v, str):
        raise ParseError(f"Expected string for {ctx}")
    return v


def require_uint(v: Any, ctx: str) -> int:
    if isinstance(v, bool):
        raise ParseError(f"Expected unsigned integer for {ctx}")
    if isinstance(v, int):
        n = v
    elif isinstance(v, str):
        try:
            n = parse_int(v.strip())
        except ValueError:
            raise ParseError(f"Invalid numeric literal for {ctx}: {v}") from None
    else:
        raise ParseError(f"Expected unsigned integer for {ctx}")
    if n < 0:
        raise ParseError(f"Negative value not allowed for {ctx}")
    return n


def parse_bit(v: Any, ctx: str, word_bits: int) -> BitSpec:
    if isinstance(v, int) and not isinstance(v, bool):
        return BitSpec.single(require_uint(v, ctx))
    text = require_str(v, ctx)
    parser = Parser(tokenize(text, ctx), ctx, word_bits)
    bit = parser.parse_bitspec()
    if not parser.check(TokenType.EOF):
        parser.error(f"unexpected {parser.current.describe()} after the bit specification")
    return bit


def parse_path(v: Any, ctx: str) -> Path:
    text = require_str(v, ctx).strip()
    if not text or text[0].isdigit():
        raise ParseError(f"constant required to name the register for {ctx}, found {v!r}")
    try:
        return Path.parse(text)
    except ValueError as e:
        raise ParseError(f"{ctx}: {e}") from None


def parse_field(obj: Dict[str, Any], index: int, word_bits: int) -> FieldDecl:
    if not isinstance(obj, dict):
        raise ParseError(f"fields[{index}] must be a dict")

    name = require_str(obj.get("name"), f"fields[{index}].name")
    if not name.isidentifier():
        raise ParseError(f"field name is not an identifier: {name!r}")

    bit = parse_bit(obj.get("bit"), f"{name}.bit", word_bits)
    if not bit.is_single:
        start, end = bit.resolve(word_bits)
        if start >= end:
            raise ParseError(f"field {name}: bit range {bit} resolves to {start}..={end}, "
                             "which is inverted or empty")

    access = require_str(obj.get("access"), f"{name}.access")
    policy = AccessPolicy.from_keyword(access)
    if policy is None:
        raise ParseError(f"Unknown access policy for {name}: {access} (expected one of {POLICY_KEYWORDS})")

    doc = obj.get("doc", [])
    if isinstance(doc, str):
        doc = doc.splitlines()
    if not isinstance(doc, list):
        raise ParseError(f"{name}.doc must be a string or a list of strings")
    docs = tuple(require_str(d, f"{name}.doc").strip() for d in doc)

    return FieldDecl(
        name=name,
        bit=bit,
        policy=policy,
        path=parse_path(obj.get("register"), f"{name}.register"),
        docs=docs,
    )


def parse_schema(obj: Dict[str, Any], source: str = "<json>", word_bits: int = 32) -> DeviceSpec:
    if not isinstance(obj, dict):
        raise ParseError("Top-level JSON must be a dict")

    consts = obj.get("constants", {})
    if not isinstance(consts, dict):
        raise ParseError("\"constants\" must be a dict")
    constants = tuple(
        Constant(parse_path(k, "constants key"), require_uint(v, f"constants.{k}"))
        for k, v in consts.items()
    )

    ports_node = obj.get("ports", [])
    if not isinstance(ports_node, list):
        raise ParseError("\"ports\" must be an array")
    ports: List[PortRef] = []
    for i, p in enumerate(ports_node):
        if isinstance(p, str) and p.strip()[:1].isalpha():
            ports.append(parse_path(p, f"ports[{i}]"))
        else:
            ports.append(require_uint(p, f"ports[{i}]"))

    fields_node = obj.get("fields")
    if not isinstance(fields_node, list):
        raise ParseError("\"fields\" must be an array")
    fields = tuple(parse_field(f, i, word_bits) for i, f in enumerate(fields_node))

    return DeviceSpec(ports=tuple(ports), fields=fields, constants=constants, source=source)


def load_schema(path: FsPath, word_bits: int = 32) -> DeviceSpec:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e.msg}", e.lineno, e.colno, str(path)) from None
    return parse_schema(data, str(path), word_bits)
