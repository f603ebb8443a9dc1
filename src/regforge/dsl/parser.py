"""
Parser for the register field description language.

Grammar:
    file        = { item } device_ports field_list
    item        = mod_block | const_decl
    mod_block   = [ "pub" ] "mod" IDENT "{" { item } "}"
    const_decl  = { DOC } [ "pub" ] "const" IDENT [ ":" IDENT ] "=" NUMBER ";"
    device_ports= "device_ports" "(" [ port { "," port } [ "," ] ] ")" ";"
    port        = NUMBER | path
    field_list  = [ field { "," field } [ "," ] ]
    field       = { DOC } "#" "[" "bit" "(" bitspec "," POLICY "," path ")" "]" { DOC } IDENT
    bitspec     = NUMBER | [ NUMBER ] ( ".." | "..=" ) [ NUMBER ]
    path        = IDENT { ( "::" | "." ) IDENT }

Example:
    device_ports(mmio::I2C_PORT_0, mmio::I2C_PORT_1);

    #[bit(0..=7, RW, rro::CTRL)]
    /// Clock divider.
    divider,
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from regforge.dsl.lexer import Token, TokenType, tokenize
from regforge.dsl.model import (
    AccessPolicy,
    BitSpec,
    Bound,
    Constant,
    DeviceSpec,
    FieldDecl,
    Path,
    PortRef,
)
from regforge.errors import ParseError
from regforge.utils.logger import get_logger

log = get_logger(__name__)

POLICY_KEYWORDS = ", ".join(p.value for p in AccessPolicy)


class Parser:
    def __init__(self, tokens: List[Token], source: str = "<dsl>", word_bits: int = 32):
        self.tokens = tokens
        self.pos = 0
        self.source = source
        self.word_bits = word_bits
        self.constants: List[Constant] = []

    # ---- token helpers

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, ahead: int = 1) -> Token:
        idx = min(self.pos + ahead, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.current
        if tok.type is not TokenType.EOF:
            self.pos += 1
        return tok

    def check(self, ttype: TokenType, value: Optional[str] = None) -> bool:
        tok = self.current
        return tok.type is ttype and (value is None or tok.value == value)

    def match(self, ttype: TokenType, value: Optional[str] = None) -> Optional[Token]:
        if self.check(ttype, value):
            return self.advance()
        return None

    def expect(self, ttype: TokenType, what: str, value: Optional[str] = None) -> Token:
        tok = self.match(ttype, value)
        if tok is None:
            self.error(f"expected {what}, found {self.current.describe()}")
        return tok

    def error(self, message: str, tok: Optional[Token] = None) -> None:
        tok = tok or self.current
        raise ParseError(message, tok.line, tok.column, self.source)

    def docs(self) -> List[str]:
        lines = []
        while self.check(TokenType.DOC):
            lines.append(self.advance().value)
        return lines

    # ---- top level

    def parse_device(self) -> DeviceSpec:
        self.parse_items(prefix=())
        self.docs()
        if not self.check(TokenType.IDENT, "device_ports"):
            self.error(f"expected 'device_ports(...)', found {self.current.describe()}")
        ports = self.parse_ports()
        fields = self.parse_fields()
        self.expect(TokenType.EOF, "end of input after the field list")
        log.debug("parsed %s: %d ports, %d fields, %d constants",
                  self.source, len(ports), len(fields), len(self.constants))
        return DeviceSpec(
            ports=tuple(ports),
            fields=tuple(fields),
            constants=tuple(self.constants),
            source=self.source,
        )

    def parse_constants(self) -> Tuple[Constant, ...]:
        self.parse_items(prefix=())
        self.expect(TokenType.EOF, "'mod' or 'const'")
        return tuple(self.constants)

    def parse_items(self, prefix: Tuple[str, ...]) -> None:
        while True:
            start = self.pos
            docs = self.docs()
            self.match(TokenType.IDENT, "pub")
            if self.check(TokenType.IDENT, "mod"):
                self.parse_mod(prefix)
            elif self.check(TokenType.IDENT, "const"):
                self.parse_const(prefix, docs)
            else:
                # not an item; rewind so field docs stay attached to the field
                self.pos = start
                return

    def parse_mod(self, prefix: Tuple[str, ...]) -> None:
        self.expect(TokenType.IDENT, "'mod'", "mod")
        name = self.expect(TokenType.IDENT, "module name").value
        self.expect(TokenType.LBRACE, "'{'")
        self.parse_items(prefix + (name,))
        self.docs()
        self.expect(TokenType.RBRACE, "'}' closing mod " + name)

    def parse_const(self, prefix: Tuple[str, ...], docs: List[str]) -> None:
        kw = self.expect(TokenType.IDENT, "'const'", "const")
        name = self.expect(TokenType.IDENT, "constant name").value
        if self.match(TokenType.COLON):
            self.expect(TokenType.IDENT, "type name")
        self.expect(TokenType.EQUALS, "'='")
        tok = self.current
        if tok.type is not TokenType.NUMBER:
            self.error(f"constant {name} must be a non-negative integer literal, found {tok.describe()}")
        self.advance()
        self.expect(TokenType.SEMI, "';'")
        self.constants.append(Constant(Path(prefix + (name,)), tok.value, tuple(docs), kw.line))

    def parse_ports(self) -> List[PortRef]:
        self.expect(TokenType.IDENT, "'device_ports'", "device_ports")
        self.expect(TokenType.LPAREN, "'(' after device_ports")
        ports: List[PortRef] = []
        while not self.check(TokenType.RPAREN):
            if self.check(TokenType.NUMBER):
                ports.append(self.advance().value)
            elif self.check(TokenType.IDENT):
                ports.append(self.parse_path("device port"))
            else:
                self.error(f"expected a port address or constant, found {self.current.describe()}")
            if not self.match(TokenType.COMMA):
                break
        self.expect(TokenType.RPAREN, "')' closing device_ports")
        self.expect(TokenType.SEMI, "';' after device_ports(...)")
        return ports

    # ---- fields

    def parse_fields(self) -> List[FieldDecl]:
        fields: List[FieldDecl] = []
        while not self.check(TokenType.EOF):
            fields.append(self.parse_field())
            if not self.match(TokenType.COMMA):
                break
        return fields

    def parse_field(self) -> FieldDecl:
        docs = self.docs()
        attr = self.expect(TokenType.HASH, "'#[bit(...)]' attribute")
        self.expect(TokenType.LBRACKET, "'[' after '#'")
        if not self.check(TokenType.IDENT, "bit"):
            self.error(f"unknown attribute {self.current.describe()}, expected 'bit'")
        self.advance()
        self.expect(TokenType.LPAREN, "'(' after bit")
        bit = self.parse_bitspec()
        self.expect(TokenType.COMMA, "',' after the bit specification")
        policy = self.parse_policy()
        self.expect(TokenType.COMMA, "',' after the access policy")
        path = self.parse_path("backing register")
        self.expect(TokenType.RPAREN, "')' closing bit(...)")
        self.expect(TokenType.RBRACKET, "']' closing the attribute")

        docs.extend(self.docs())
        if self.check(TokenType.HASH):
            self.error("a field takes exactly one #[bit(...)] attribute")
        name_tok = self.expect(TokenType.IDENT, "field name")
        name = name_tok.value

        if not bit.is_single:
            start, end = bit.resolve(self.word_bits)
            if start >= end:
                self.error(f"field {name}: bit range {bit} resolves to {start}..={end}, "
                           "which is inverted or empty", attr)

        return FieldDecl(
            name=name,
            bit=bit,
            policy=policy,
            path=path,
            docs=tuple(docs),
            line=attr.line,
        )

    def parse_bitspec(self) -> BitSpec:
        tok = self.current
        if tok.type is TokenType.FLOAT:
            self.error(f"bit range bounds must be integer literals, found {tok.describe()}")

        start: Optional[Bound] = None
        if tok.type is TokenType.NUMBER:
            self.advance()
            if not (self.check(TokenType.RANGE) or self.check(TokenType.RANGE_INCLUSIVE)):
                return BitSpec.single(tok.value)
            start = Bound(tok.value)
        elif not (self.check(TokenType.RANGE) or self.check(TokenType.RANGE_INCLUSIVE)):
            self.error(f"expected a bit index or range, found {tok.describe()}")

        op = self.advance()
        nxt = self.current
        if nxt.type is TokenType.NUMBER:
            self.advance()
            end: Optional[Bound] = Bound(nxt.value, included=op.type is TokenType.RANGE_INCLUSIVE)
        elif nxt.type in (TokenType.FLOAT, TokenType.IDENT, TokenType.MINUS):
            self.error(f"bit range bounds must be integer literals, found {nxt.describe()}")
        elif op.type is TokenType.RANGE_INCLUSIVE:
            self.error("an inclusive range '..=' needs an end bound")
        else:
            end = None
        return BitSpec.range(start, end)

    def parse_policy(self) -> AccessPolicy:
        tok = self.current
        policy = AccessPolicy.from_keyword(tok.value) if tok.type is TokenType.IDENT else None
        if policy is None:
            self.error(f"unknown access policy {tok.describe()}, expected one of {POLICY_KEYWORDS}")
        self.advance()
        return policy

    def parse_path(self, what: str) -> Path:
        if not self.check(TokenType.IDENT):
            self.error(f"constant required to name the {what}, found {self.current.describe()}")
        segments = [self.advance().value]
        while self.check(TokenType.PATHSEP) or self.check(TokenType.DOT):
            self.advance()
            if not self.check(TokenType.IDENT):
                self.error(f"constant required to name the {what}, found {self.current.describe()}")
            segments.append(self.advance().value)
        return Path(tuple(segments))


def parse_device(text: str, source: str = "<dsl>", word_bits: int = 32) -> DeviceSpec:
    """Parse a full device description. Any error aborts the whole parse."""
    return Parser(tokenize(text, source), source, word_bits).parse_device()


def parse_constants(text: str, source: str = "<dsl>") -> Tuple[Constant, ...]:
    """Parse a file holding only ``mod``/``const`` items, such as a memory map."""
    return Parser(tokenize(text, source), source).parse_constants()
