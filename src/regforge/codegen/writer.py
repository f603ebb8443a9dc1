from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List

INDENT = "    "


class CodeWriter:
    def __init__(self) -> None:
        self.buf: List[str] = []
        self.ind = 0

    def line(self, s: str = "") -> None:
        self.buf.append((INDENT * self.ind) + s if s else "")

    def indent(self) -> None:
        self.ind += 1

    def outdent(self) -> None:
        self.ind = max(0, self.ind - 1)

    @contextmanager
    def block(self, header: str) -> Iterator[None]:
        """``header:`` followed by an indented body."""
        self.line(header)
        self.indent()
        try:
            yield
        finally:
            self.outdent()

    def docstring(self, lines: List[str]) -> None:
        lines = [ln.replace("\\", "\\\\").replace('"""', '\\"\\"\\"') for ln in lines]
        if not lines:
            return
        if len(lines) == 1 and not lines[0].endswith('"'):
            self.line(f'"""{lines[0]}"""')
            return
        self.line(f'"""{lines[0]}')
        for ln in lines[1:]:
            self.line(ln)
        self.line('"""')

    def text(self) -> str:
        while self.buf and self.buf[-1] == "":
            self.buf.pop()
        return "\n".join(self.buf) + "\n"
