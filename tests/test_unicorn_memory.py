from __future__ import annotations

import pytest

pytest.importorskip("unicorn")

from regforge.runtime.memory import MemoryBus  # noqa: E402
from regforge.runtime.unicorn_memory import UnicornMemory  # noqa: E402

UART = 0x4004_2000


@pytest.fixture
def mem() -> UnicornMemory:
    m = UnicornMemory()
    m.map(UART, 0x10)
    return m


def test_read_write_roundtrip(mem):
    mem.write(UART + 4, 4, 0xDEAD_BEEF)
    assert mem.read(UART + 4, 4) == 0xDEAD_BEEF
    assert mem.read(UART + 4, 1) == 0xEF


def test_map_is_page_aligned(mem):
    # the whole page is mapped, not just the 16 requested bytes
    mem.write(UART + 0xFFC, 4, 1)
    assert mem.read(UART + 0xFFC, 4) == 1


def test_unmapped_access_is_key_error(mem):
    with pytest.raises(KeyError):
        mem.read(0x1000_0000, 4)
    with pytest.raises(KeyError):
        mem.write(0x1000_0000, 4, 0)


def test_double_map_is_value_error(mem):
    with pytest.raises(ValueError):
        mem.map(UART, 0x10)


def test_device_over_unicorn(make_device):
    Regs = make_device(
        """
        mod rro { const CTRL = 0x0; const DATA = 0x4; }
        device_ports(0x40042000);
        #[bit(0, RW, rro::CTRL)] enable,
        #[bit(0..=7, RW, rro::DATA)] data,
        """
    )
    mem = UnicornMemory()
    mem.map(UART, 8)
    bus = MemoryBus()
    bus.map("uart", UART, 8, mem)

    dev = Regs.new(UART, bus)
    dev.set_enable(True)
    dev.set_data(0x5A)
    assert dev.get_enable()
    assert dev.get_data() == 0x5A
    assert mem.read(UART, 4) == 1
    assert mem.read(UART + 4, 4) == 0x5A
