"""Shared fixtures for the cronbridge tests."""

from typing import Any, Awaitable, Callable, List, Optional

import pytest

from cronbridge.scheduler.executor import ActionExecutor
from cronbridge.scheduler.lifecycle import JobLifecycleManager
from cronbridge.sync.memory import MemorySyncClient


class FakeTimer:
    """Timer double that only fires when told to."""

    def __init__(self, name: str, schedule: Any, on_tick: Callable[[], Awaitable[Any]]) -> None:
        self.name = name
        self.schedule = schedule
        self.on_tick = on_tick
        self.stopped = False
        self.stop_calls = 0
        self.fire_count = 0

    @property
    def next_fire_time(self) -> Optional[Any]:
        return None

    def stop(self) -> None:
        self.stop_calls += 1
        self.stopped = True

    async def fire(self) -> None:
        """Run the callback, as the scheduler would, unless stopped."""
        if self.stopped:
            return
        self.fire_count += 1
        await self.on_tick()


class FakeTimerFactory:
    """Timer factory recording every timer it creates."""

    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, name: str, schedule: Any, on_tick: Callable[[], Awaitable[Any]]) -> FakeTimer:
        timer = FakeTimer(name, schedule, on_tick)
        self.timers.append(timer)
        return timer

    def active(self, name: Optional[str] = None) -> List[FakeTimer]:
        return [t for t in self.timers if not t.stopped and (name is None or t.name == name)]


@pytest.fixture
def client() -> MemorySyncClient:
    """Create an empty in-memory sync client."""
    return MemorySyncClient()


@pytest.fixture
def timer_factory() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def executor(client: MemorySyncClient) -> ActionExecutor:
    return ActionExecutor(client)


@pytest.fixture
def lifecycle(executor: ActionExecutor, timer_factory: FakeTimerFactory) -> JobLifecycleManager:
    return JobLifecycleManager(executor, timer_factory)
