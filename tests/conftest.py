"""Shared test fixtures."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Callable

import pytest

from novel_continuation_generator.models import ProjectConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SAMPLE_CONFIG = FIXTURES_DIR / "sample_config.yaml"

_CONTRACT_LINE_RE = re.compile(r"You must output these section headings and only these: (.+)\.$", re.MULTILINE)
_HEADING_RE = re.compile(r"【([^】]+)】")


class FakeScheduler:
    """Manually fired stand-in for :class:`AsyncioScheduler`."""

    def __init__(self) -> None:
        self.pending: dict[int, Callable[[], None]] = {}
        self.delays: list[float] = []
        self._next = 0

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> int:
        self._next += 1
        self.pending[self._next] = callback
        self.delays.append(delay_ms)
        return self._next

    def cancel(self, handle: int) -> None:
        self.pending.pop(handle, None)

    def fire_all(self) -> None:
        for handle, callback in list(self.pending.items()):
            self.pending.pop(handle, None)
            callback()


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class ContractStream:
    """Fake model stream that answers every prompt with its required headings.

    Headings listed in *drop* are left out of the first *drop_times* replies
    that would contain them. Resume prompts get ``RESUME_REPLY``; prompts
    without a section contract get ``CHAPTER_REPLY``.
    """

    RESUME_REPLY = " and then the tide came in."
    CHAPTER_REPLY = "The lamp was lit before dusk, as it had been for forty years."

    def __init__(self, drop: tuple[str, ...] = (), drop_times: int = 1) -> None:
        self.calls: list[tuple[str, str]] = []
        self.drop = set(drop)
        self.drop_times = drop_times

    @property
    def roles(self) -> list[str]:
        return [role for role, _ in self.calls]

    @property
    def prompts(self) -> list[str]:
        return [prompt for _, prompt in self.calls]

    def reply_for(self, prompt: str) -> str:
        if prompt.rstrip().endswith("Output the continuation directly."):
            return self.RESUME_REPLY

        m = _CONTRACT_LINE_RE.search(prompt)
        if m is None:
            return self.CHAPTER_REPLY

        headings = _HEADING_RE.findall(m.group(1))
        if self.drop_times > 0 and self.drop.intersection(headings):
            headings = [h for h in headings if h not in self.drop]
            self.drop_times -= 1

        body = "\n\n".join(f"【{h}】\n- notes on {h.lower()}" for h in headings)
        if "<analysis_detail>" in prompt:
            return (
                f"<analysis_detail>\n{body}\n</analysis_detail>\n"
                "<executive_summary>\n- escalate the storm subplot\n</executive_summary>"
            )
        return body

    async def __call__(self, role: str, prompt: str):
        self.calls.append((role, prompt))
        reply = self.reply_for(prompt)
        half = len(reply) // 2
        yield reply[:half]
        yield reply[half:]


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def sample_config_path() -> Path:
    return SAMPLE_CONFIG


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def contract_stream() -> ContractStream:
    return ContractStream()


@pytest.fixture
def make_stream() -> Callable[..., ContractStream]:
    return ContractStream


@pytest.fixture
def make_config() -> Callable[..., ProjectConfig]:
    """Offline config factory; progress updates are unthrottled by default."""

    def _make(**overrides: Any) -> ProjectConfig:
        values: dict[str, Any] = {
            "target_chapter_count": 7,
            "breakdown_chunk_size": 5,
            "compression_mode": "off",
            "stream_update_interval_ms": 0,
            "network_enabled": False,
        }
        values.update(overrides)
        return ProjectConfig(**values)

    return _make


@pytest.fixture
def sample_novel() -> str:
    return (
        "Chapter 1\n\nThe keeper climbed the stairs at dusk. Below, the harbor "
        "emptied of boats one by one, and the storm waited past the reef.\n\n"
        "Chapter 2\n\nMara arrived with the supply boat and a letter she would not open."
    )
