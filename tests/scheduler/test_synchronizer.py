"""Tests for the registry synchronizer."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cronbridge.scheduler.synchronizer import INDEX_PATH, RegistrySynchronizer
from cronbridge.sync.memory import MemoryListHandle

CRON = "* * * * * *"


async def settle() -> None:
    """Let deferred callbacks and tasks run."""
    for _ in range(5):
        await asyncio.sleep(0)


def definition(event: str = "tick") -> dict:
    return {"cron": CRON, "emit": {"name": event, "data": 1}}


@pytest.fixture
def synchronizer(client, lifecycle) -> RegistrySynchronizer:
    return RegistrySynchronizer(client, lifecycle)


class TestStart:
    """Tests for the initial subscription."""

    @pytest.mark.asyncio
    async def test_missing_index_is_empty(self, synchronizer, timer_factory) -> None:
        """Test that a registry without index starts with no jobs."""
        await synchronizer.start()

        assert synchronizer.is_started is True
        assert synchronizer.tracked_names == []
        assert timer_factory.timers == []

    @pytest.mark.asyncio
    async def test_failed_subscription_can_be_retried(self, client, synchronizer, timer_factory) -> None:
        """Test that a failed start releases the index and allows a new start."""
        client.write("cron/a", definition())
        client.set_list(INDEX_PATH, ["a"])

        with patch.object(MemoryListHandle, "when_ready", AsyncMock(side_effect=RuntimeError("offline"))):
            with pytest.raises(RuntimeError, match="offline"):
                await synchronizer.start()

        assert synchronizer.is_started is False
        assert client.handle_count() == 0

        await synchronizer.start()

        assert synchronizer.tracked_names == ["a"]
        assert [t.name for t in timer_factory.active()] == ["a"]

    @pytest.mark.asyncio
    async def test_existing_jobs_scheduled(self, client, synchronizer, timer_factory) -> None:
        """Test that cached definitions are delivered on subscribe."""
        client.write("cron/a", definition())
        client.write("cron/b", definition())
        client.set_list(INDEX_PATH, ["a", "b"])

        await synchronizer.start()

        assert synchronizer.tracked_names == ["a", "b"]
        assert [t.name for t in timer_factory.active()] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_listed_job_without_record(self, client, synchronizer, timer_factory) -> None:
        """Test that a job is scheduled once its record appears."""
        client.set_list(INDEX_PATH, ["a"])
        await synchronizer.start()

        assert synchronizer.tracked_names == ["a"]
        assert timer_factory.timers == []

        client.write("cron/a", definition())
        assert [t.name for t in timer_factory.active()] == ["a"]

    @pytest.mark.asyncio
    async def test_custom_layout(self, client, lifecycle, timer_factory) -> None:
        """Test that index path and record root are configurable."""
        client.write("jobs/a", definition())
        client.set_list("jobs/.index", ["a"])
        synchronizer = RegistrySynchronizer(client, lifecycle, index_path="jobs/.index", record_root="jobs/")

        await synchronizer.start()

        assert synchronizer.record_path("a") == "jobs/a"
        assert len(timer_factory.active("a")) == 1

    @pytest.mark.asyncio
    async def test_start_twice(self, client, synchronizer) -> None:
        """Test that a second start does not subscribe again."""
        await synchronizer.start()
        await synchronizer.start()
        assert client.handle_count(INDEX_PATH) == 1


class TestUpdateJobs:
    """Tests for diffing index deliveries."""

    @pytest.mark.asyncio
    async def test_diff(self, client, synchronizer, lifecycle, timer_factory) -> None:
        """Test that only added and removed names change."""
        for name in ("a", "b", "c", "d"):
            client.write(f"cron/{name}", definition())
        client.set_list(INDEX_PATH, ["a", "b", "c"])
        await synchronizer.start()
        timers_before = {t.name: t for t in timer_factory.active()}

        client.set_list(INDEX_PATH, ["b", "c", "d"])

        assert sorted(synchronizer.tracked_names) == ["b", "c", "d"]
        assert timers_before["a"].stopped is True
        assert lifecycle.get_timer("b") is timers_before["b"]
        assert lifecycle.get_timer("c") is timers_before["c"]
        assert len(timer_factory.timers) == 4
        assert client.handle_count("cron/a") == 0
        assert client.handle_count("cron/b") == 1

    @pytest.mark.asyncio
    async def test_unchanged_list(self, client, synchronizer, timer_factory) -> None:
        """Test that redelivering the same list causes no churn."""
        client.write("cron/a", definition())
        client.set_list(INDEX_PATH, ["a"])
        await synchronizer.start()

        client.set_list(INDEX_PATH, ["a"])

        assert len(timer_factory.timers) == 1
        assert client.handle_count("cron/a") == 1

    @pytest.mark.asyncio
    async def test_empty_list_removes_all(self, client, synchronizer, timer_factory) -> None:
        """Test that an empty index tears every job down."""
        client.write("cron/a", definition())
        client.set_list(INDEX_PATH, ["a"])
        await synchronizer.start()

        client.set_list(INDEX_PATH, [])

        assert synchronizer.tracked_names == []
        assert timer_factory.active() == []

    def test_duplicate_names(self, client, lifecycle) -> None:
        """Test that a name listed twice is tracked once."""
        synchronizer = RegistrySynchronizer(client, lifecycle)
        synchronizer.update_jobs(["a", "a", "b"])

        assert synchronizer.tracked_names == ["a", "b"]
        assert client.handle_count("cron/a") == 1


class TestDefinitions:
    """Tests for definition record updates."""

    @pytest.mark.asyncio
    async def test_update_replaces_timer(self, client, synchronizer, timer_factory) -> None:
        """Test that a changed definition yields a new timer."""
        client.write("cron/a", definition())
        client.set_list(INDEX_PATH, ["a"])
        await synchronizer.start()

        client.write("cron/a", {"cron": "0 * * * *", "emit": {"name": "tick"}})

        assert len(timer_factory.timers) == 2
        assert timer_factory.timers[0].stopped is True
        assert timer_factory.active("a")[0].schedule == "0 * * * *"

    @pytest.mark.asyncio
    async def test_malformed_record(self, client, synchronizer, timer_factory, caplog) -> None:
        """Test that a malformed record removes the timer and is logged."""
        client.write("cron/a", definition())
        client.set_list(INDEX_PATH, ["a"])
        await synchronizer.start()

        with caplog.at_level(logging.ERROR):
            client.write("cron/a", ["not", "a", "mapping"])

        assert timer_factory.active() == []
        assert "Invalid cron definition a" in caplog.text
        assert synchronizer.tracked_names == ["a"]

    @pytest.mark.asyncio
    async def test_definition_record_deleted(self, client, synchronizer, timer_factory) -> None:
        """Test that deleting a definition record stops its timer."""
        client.write("cron/a", definition())
        client.set_list(INDEX_PATH, ["a"])
        await synchronizer.start()

        client.remove("cron/a")

        assert timer_factory.active() == []
        assert synchronizer.tracked_names == []

    @pytest.mark.asyncio
    async def test_apply_failure_is_contained(self, client, caplog) -> None:
        """Test that a lifecycle error does not break the subscription."""
        lifecycle = MagicMock()
        lifecycle.apply.side_effect = RuntimeError("boom")
        synchronizer = RegistrySynchronizer(client, lifecycle)
        client.write("cron/a", definition())
        client.set_list(INDEX_PATH, ["a"])

        with caplog.at_level(logging.ERROR):
            await synchronizer.start()
            client.write("cron/a", definition("other"))

        assert lifecycle.apply.call_count == 2
        assert "Failed to apply cron definition a" in caplog.text


class TestIndexDeletion:
    """Tests for recovering from deletion of the index record."""

    @pytest.mark.asyncio
    async def test_resubscribes(self, client, synchronizer, timer_factory, caplog) -> None:
        """Test that a recreated index is picked up without duplicates."""
        for name in ("a", "b", "c"):
            client.write(f"cron/{name}", definition())
        client.set_list(INDEX_PATH, ["a", "b"])
        await synchronizer.start()

        with caplog.at_level(logging.DEBUG, logger="cronbridge.scheduler.synchronizer"):
            client.remove(INDEX_PATH)
            await settle()

        assert "Cron job index record deleted. Resubscribing ..." in caplog.text
        assert client.handle_count(INDEX_PATH) == 1

        client.set_list(INDEX_PATH, ["b", "c"])

        assert sorted(synchronizer.tracked_names) == ["b", "c"]
        assert client.handle_count("cron/b") == 1
        assert client.handle_count("cron/c") == 1
        assert client.handle_count("cron/a") == 0
        assert sorted(t.name for t in timer_factory.active()) == ["b", "c"]

    @pytest.mark.asyncio
    async def test_resubscription_is_deferred(self, client, synchronizer) -> None:
        """Test that no new subscription happens inside the deletion callback."""
        client.set_list(INDEX_PATH, [])
        await synchronizer.start()

        client.remove(INDEX_PATH)
        assert client.handle_count(INDEX_PATH) == 0

        await settle()
        assert client.handle_count(INDEX_PATH) == 1

    @pytest.mark.asyncio
    async def test_stop_cancels_resubscription(self, client, synchronizer) -> None:
        """Test that stopping before the deferred resubscribe wins."""
        client.set_list(INDEX_PATH, [])
        await synchronizer.start()

        client.remove(INDEX_PATH)
        synchronizer.stop()
        await settle()

        assert client.handle_count() == 0


class TestStop:
    """Tests for releasing the registry."""

    @pytest.mark.asyncio
    async def test_stop_releases_handles(self, client, synchronizer) -> None:
        """Test that stop discards every subscription."""
        client.write("cron/a", definition())
        client.set_list(INDEX_PATH, ["a"])
        await synchronizer.start()

        synchronizer.stop()

        assert client.handle_count() == 0
        assert synchronizer.tracked_names == []

    @pytest.mark.asyncio
    async def test_no_updates_after_stop(self, client, synchronizer, timer_factory) -> None:
        """Test that later registry changes are ignored."""
        await synchronizer.start()
        synchronizer.stop()

        client.write("cron/a", definition())
        client.set_list(INDEX_PATH, ["a"])

        assert timer_factory.timers == []
