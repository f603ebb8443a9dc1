from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Sequence

from regforge.analysis.analyzer import analyze
from regforge.codegen.generator import generate
from regforge.codegen.loader import load_source
from regforge.config import GeneratorOptions, configure
from regforge.pipeline import read_constants, read_spec
from regforge.runtime.memory import Memory, MemoryBus
from regforge.shell.commands import Commands
from regforge.shell.shell import RegShell
from regforge.utils.logger import get_logger, setup_logging

log = get_logger(__name__)


def _generate_source(input_path: Path, constants: Sequence[Path], opts: GeneratorOptions):
    spec = read_spec(input_path, opts.word_bits)
    model = analyze(spec, opts.word_bits, read_constants(constants))
    return model, generate(model, opts)


def run_generate(
    input_path: Path,
    output: Optional[Path],
    constants: Sequence[Path],
    class_name: str,
    word_bits: int,
    log_level: str,
    quiet: bool,
) -> None:
    setup_logging(level=log_level, quiet=quiet)
    opts = GeneratorOptions(class_name=class_name, word_bits=word_bits, source_name=input_path.name)

    log.info("Input: %s", input_path)
    _, source = _generate_source(input_path, constants, opts)

    if output is None:
        sys.stdout.write(source)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(source, encoding="utf-8", newline="\n")
    log.info("Wrote %s", output)


def read_script(path: Path) -> str:
    """Startup script: one or more commands per line, `#` starts a comment line."""
    lines = []
    for ln in path.read_text(encoding="utf-8", errors="replace").splitlines():
        s = ln.strip()
        if s and not s.startswith("#"):
            lines.append(s)
    return ";".join(lines)


def _backing_memory(backend: str, base: int, size: int) -> Optional[Memory]:
    if backend == "unicorn":
        from regforge.runtime.unicorn_memory import UnicornMemory

        mem = UnicornMemory()
        mem.map(base, size)
        return mem
    return None  # MemoryBus.map allocates a BufferMemory


def run_shell(
    input_path: Path,
    base: Optional[int],
    constants: Sequence[Path],
    class_name: str,
    word_bits: int,
    backend: str,
    cmd: str,
    validate: bool,
    log_level: str,
    quiet: bool,
    cfg: Optional[Path] = None,
    interactive: bool = False,
) -> None:
    setup_logging(level=log_level, quiet=quiet)
    configure(validate=validate)
    opts = GeneratorOptions(class_name=class_name, word_bits=word_bits, source_name=input_path.name)

    model, source = _generate_source(input_path, constants, opts)
    if base is None:
        if not model.ports:
            raise ValueError(f"{input_path} declares no device ports; pass --base")
        base = model.ports[0]

    span = max(r.offset for r in model.registers) + model.word_type.size
    bus = MemoryBus()
    bus.map(class_name, base, span, _backing_memory(backend, base, span))

    module = load_source(source, f"regforge_shell_{class_name.lower()}", str(input_path))
    device = getattr(module, class_name).new(base, bus)
    log.info("%s at 0x%08X (%d registers, backend=%s)", class_name, base, len(model.registers), backend)

    sh = RegShell(Commands(device=device, model=model, bus=bus, base=base))
    if cfg is not None:
        sh.run_script(read_script(cfg))
    if cmd.strip():
        sh.run_script(cmd)
    if interactive or not (cmd.strip() or cfg):
        sh.cmdloop()
