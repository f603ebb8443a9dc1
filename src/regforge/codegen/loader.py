from __future__ import annotations

import sys
import types
from pathlib import Path
from typing import Optional

from regforge.utils.logger import get_logger

log = get_logger(__name__)


def load_source(source: str, module_name: str = "regforge_generated", filename: Optional[str] = None,
                register: bool = False) -> types.ModuleType:
    """Execute generated accessor source as a fresh module.

    With ``register`` the module is also placed in ``sys.modules``.
    """
    module = types.ModuleType(module_name)
    module.__file__ = filename or f"<{module_name}>"
    code = compile(source, module.__file__, "exec")
    exec(code, module.__dict__)
    if register:
        sys.modules[module_name] = module
    log.debug("loaded generated module %s", module_name)
    return module


def load_file(path: Path, module_name: Optional[str] = None) -> types.ModuleType:
    return load_source(path.read_text(encoding="utf-8"), module_name or path.stem, str(path))
