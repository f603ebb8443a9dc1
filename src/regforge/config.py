from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator

from regforge.utils.logger import get_logger

log = get_logger(__name__)

VALIDATE_ENV = "REGFORGE_VALIDATE"
WORD_SIZES = (8, 16, 32, 64)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Runtime checks that a release firmware would compile out: port
    # membership, setter value widths, bit primitive preconditions.
    validate: bool = __debug__
    word_bits: int = 32


@dataclass(frozen=True)
class GeneratorOptions:
    class_name: str = "Registers"
    word_bits: int = 32
    source_name: str = "<dsl>"

    def __post_init__(self) -> None:
        if self.word_bits not in WORD_SIZES:
            raise ValueError(f"word_bits must be one of {WORD_SIZES}, got {self.word_bits}")
        if not self.class_name.isidentifier():
            raise ValueError(f"class_name is not a valid identifier: {self.class_name!r}")


_settings = Settings(validate=_env_flag(VALIDATE_ENV, __debug__))


def get_settings() -> Settings:
    return _settings


def configure(**changes) -> Settings:
    """Replace fields of the active settings and return the new value."""
    global _settings
    _settings = replace(_settings, **changes)
    log.debug("settings: %s", _settings)
    return _settings


@contextmanager
def validation(enabled: bool = True) -> Iterator[Settings]:
    previous = get_settings()
    try:
        yield configure(validate=enabled)
    finally:
        configure(validate=previous.validate)
