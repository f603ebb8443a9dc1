from __future__ import annotations

import pytest

from regforge.config import GeneratorOptions, validation
from regforge.pipeline import build_device
from regforge.runtime.memory import BufferMemory, MemoryBus

BASE = 0x2000_0000


@pytest.fixture(autouse=True)
def _force_validation():
    with validation(True):
        yield


@pytest.fixture
def storage() -> BufferMemory:
    """Four zeroed 32-bit words at BASE."""
    return BufferMemory.words(BASE, 4)


@pytest.fixture
def bus(storage) -> MemoryBus:
    b = MemoryBus()
    b.map("dev", storage.base, storage.size, storage)
    b.history_enabled = True
    return b


@pytest.fixture
def make_device():
    def _make(text: str, class_name: str = "Registers", word_bits: int = 32, constants=None):
        opts = GeneratorOptions(class_name=class_name, word_bits=word_bits, source_name="test.regs")
        return build_device(text, opts, constants)

    return _make
