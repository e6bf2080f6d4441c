"""Shared fixtures for vow tests."""

import pytest

from vow.protocol import GateContext
from vow.store import FileRecordStore, MemoryRecordStore

T0 = 1_700_000_000_000


class FakeClock:
    """Callable epoch-ms clock that only moves when told to."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class FixedCodes:
    """Code source that hands out a fixed sequence, repeating the last one."""

    def __init__(self, *codes: int):
        self.codes = list(codes) or [42]
        self.calls = 0

    def __call__(self) -> int:
        code = self.codes[min(self.calls, len(self.codes) - 1)]
        self.calls += 1
        return code


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def codes():
    return FixedCodes(42, 317, 9)


@pytest.fixture
def fixed_codes():
    """Factory for FixedCodes sources."""
    return FixedCodes


@pytest.fixture
def mem_ctx(tmp_path, clock, codes):
    """GateContext over an in-memory store."""
    return GateContext(
        root=tmp_path,
        store=MemoryRecordStore(),
        clock=clock,
        code_source=codes,
    )


@pytest.fixture
def file_ctx(tmp_path, clock, codes):
    """GateContext over real files in tmp_path."""
    return GateContext(
        root=tmp_path,
        store=FileRecordStore(tmp_path),
        clock=clock,
        code_source=codes,
    )


@pytest.fixture
def vow_env(monkeypatch):
    """Clear VOW_* variables so tests see defaults."""
    for name in ("VOW_COOLDOWN_MS", "VOW_DEBUG", "VOW_RULES_FILE", "VOW_NO_DEFAULT_RULES"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
