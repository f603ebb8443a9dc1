from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from regforge.app import run_generate, run_shell
from regforge.config import WORD_SIZES, get_settings
from regforge.errors import RegforgeError


def _common(p: argparse.ArgumentParser) -> None:
    p.add_argument("input", type=Path, help="Register description (.regs DSL or .json)")
    p.add_argument("--constants", type=Path, action="append", default=[],
                   help="File of mod/const items (e.g. a memory map); may repeat")
    p.add_argument("--class-name", default="Registers", help="Name of the generated container class")
    p.add_argument("--word-bits", type=int, default=get_settings().word_bits, choices=WORD_SIZES, help="Register width in bits")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--quiet", action="store_true", help="Reduce console output")


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="regforge", description="Compile register field descriptions to Python accessors")
    sub = p.add_subparsers(dest="command", required=True)

    g = sub.add_parser("generate", help="Emit the accessor module")
    _common(g)
    g.add_argument("-o", "--output", type=Path, help="Output .py path (default: stdout)")

    s = sub.add_parser("shell", help="Poke a generated device over emulated memory")
    _common(s)
    s.add_argument("--base", type=lambda v: int(v, 0), help="Base address (default: first device port)")
    s.add_argument("--backend", default="buffer", choices=["buffer", "unicorn"])
    s.add_argument("--cmd", type=str, default="", help='Semicolon-separated commands, e.g. "set en 1; regs"')
    s.add_argument("--no-validate", dest="validate", action="store_false", default=get_settings().validate,
                   help="Skip port and value-width checks")
    s.add_argument("--cfg", type=Path, help="Startup script run before --cmd (one command per line, # comments)")
    s.add_argument("--interactive", action="store_true", help="Stay in the shell after --cfg/--cmd")

    args = p.parse_args(argv)

    try:
        if args.command == "generate":
            run_generate(
                input_path=args.input,
                output=args.output,
                constants=args.constants,
                class_name=args.class_name,
                word_bits=args.word_bits,
                log_level=args.log_level,
                quiet=args.quiet,
            )
        else:
            run_shell(
                input_path=args.input,
                base=args.base,
                constants=args.constants,
                class_name=args.class_name,
                word_bits=args.word_bits,
                backend=args.backend,
                cmd=args.cmd,
                validate=args.validate,
                log_level=args.log_level,
                quiet=args.quiet,
                cfg=args.cfg,
                interactive=args.interactive,
            )
    except (RegforgeError, OSError, ValueError, AssertionError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
