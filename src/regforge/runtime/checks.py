from __future__ import annotations

from regforge.config import get_settings


def validation_enabled() -> bool:
    return get_settings().validate


def debug_assert(condition: bool, message: str) -> None:
    """Assert ``condition`` only while the validation mode is on."""
    if not condition and get_settings().validate:
        raise AssertionError(message)
