from __future__ import annotations

import cmd
import shlex
from typing import List

from regforge.errors import RegforgeError
from regforge.shell.commands import Commands
from regforge.utils.logger import get_logger

log = get_logger(__name__)

# failures a command may hit on bad user input; anything else is a bug
_COMMAND_ERRORS = (RegforgeError, KeyError, ValueError, AssertionError)


class RegShell(cmd.Cmd):
    prompt = "regs> "

    def __init__(self, cmds: Commands):
        super().__init__()
        self.cmds = cmds
        name = type(cmds.device).__name__
        self.intro = f"{name} at 0x{cmds.base:08X}. Type 'help' for commands."

    def run_script(self, script: str) -> None:
        """Run ``;``-separated commands, as given to ``--cmd``."""
        for line in filter(None, (p.strip() for p in script.split(";"))):
            self.onecmd(line)

    def default(self, line: str) -> None:
        try:
            argv = shlex.split(line)
        except ValueError as e:
            print(f"parse error: {e}")
            return
        if not argv:
            return

        handler = getattr(self.cmds, "cmd_" + argv[0].replace("-", "_"), None)
        if handler is None:
            print(f"unknown command: {argv[0]}")
            return
        try:
            out = handler(argv[1:])
        except _COMMAND_ERRORS as e:
            log.debug("%s failed", argv[0], exc_info=True)
            print(f"error: {e}")
            return
        if out:
            print(out)

    def completenames(self, text: str, *ignored) -> List[str]:
        names = [n[4:] for n in dir(self.cmds) if n.startswith("cmd_")] + ["exit", "help"]
        return sorted(n for n in names if n.startswith(text))

    def completedefault(self, text: str, line: str, begidx: int, endidx: int) -> List[str]:
        # field names for get/set
        if line.split()[0] in ("get", "set"):
            return [f.name for f in self.cmds.model.fields if f.name.startswith(text)]
        return []

    def emptyline(self) -> bool:
        return False

    def do_exit(self, arg: str) -> bool:
        return True

    do_quit = do_exit

    def do_EOF(self, arg: str) -> bool:
        print()
        return True

    def do_help(self, arg: str) -> None:
        names = sorted(n[4:] for n in dir(self.cmds) if n.startswith("cmd_"))
        print("commands: " + ", ".join(names + ["exit"]))
