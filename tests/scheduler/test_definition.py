"""Tests for cron job definitions."""

from datetime import datetime, timezone

import pytest

from cronbridge.scheduler.definition import (
    ActionKind,
    CallOperation,
    CronDefinition,
    EventOperation,
    RecordOperation,
    parse_fire_time,
)
from cronbridge.scheduler.exceptions import InvalidDefinitionError


class TestFromDict:
    """Tests for parsing registry records."""

    def test_full_definition(self) -> None:
        """Test parsing every supported attribute."""
        definition = CronDefinition.from_dict({
            "cron": "*/5 * * * * *",
            "call": {"name": "reports/build", "data": {"full": True}},
            "emit": {"name": "reports/tick", "data": 1},
            "setRecord": {"name": "status/reports", "data": {"state": "idle"}},
            "updateRecord": {"name": "status/counters", "data": {"runs": 1}},
            "deleteRecord": "tmp/reports",
        })

        assert definition.cron == "*/5 * * * * *"
        assert definition.on is None
        assert definition.call == CallOperation(name="reports/build", data={"full": True})
        assert definition.emit == EventOperation(name="reports/tick", data=1)
        assert definition.set_record == RecordOperation(name="status/reports", data={"state": "idle"})
        assert definition.update_record == RecordOperation(name="status/counters", data={"runs": 1})
        assert definition.delete_record == "tmp/reports"

    def test_none_is_empty_definition(self) -> None:
        """Test that a missing record yields an empty definition."""
        definition = CronDefinition.from_dict(None)
        assert definition == CronDefinition()
        assert definition.actions() == []

    def test_empty_strings_are_absent(self) -> None:
        """Test that empty schedule values count as missing."""
        definition = CronDefinition.from_dict({"cron": "", "on": ""})
        assert definition.cron is None
        assert definition.on is None

    def test_payload_data_optional(self) -> None:
        """Test that call and emit payloads may omit data."""
        definition = CronDefinition.from_dict({"cron": "* * * * *", "emit": {"name": "tick"}})
        assert definition.emit == EventOperation(name="tick", data=None)

    def test_record_operation_without_data(self) -> None:
        """Test that record operations default to empty data."""
        definition = CronDefinition.from_dict({"updateRecord": {"name": "a/b"}})
        assert definition.update_record.data == {}

    def test_not_a_mapping(self) -> None:
        """Test that non-mapping records are rejected."""
        with pytest.raises(InvalidDefinitionError) as exc_info:
            CronDefinition.from_dict(["cron"], name="job")
        assert exc_info.value.job_name == "job"

    def test_action_without_name(self) -> None:
        """Test that actions need a target name."""
        with pytest.raises(InvalidDefinitionError, match='"call" requires a "name"'):
            CronDefinition.from_dict({"cron": "* * * * *", "call": {"data": 1}})

    def test_update_record_data_must_be_mapping(self) -> None:
        """Test that updateRecord data is a key/value mapping."""
        with pytest.raises(InvalidDefinitionError, match="updateRecord.data"):
            CronDefinition.from_dict({"updateRecord": {"name": "a", "data": [1, 2]}})

    def test_cron_must_be_string(self) -> None:
        """Test that cron expressions are strings."""
        with pytest.raises(InvalidDefinitionError):
            CronDefinition.from_dict({"cron": 5})

    def test_to_dict_round_trip(self) -> None:
        """Test converting back to the registry format."""
        data = {
            "on": "2030-01-01T00:00:00+00:00",
            "emit": {"name": "tick", "data": None},
            "deleteRecord": "tmp/x",
        }
        assert CronDefinition.from_dict(data).to_dict() == data


class TestResolveSchedule:
    """Tests for schedule resolution."""

    def test_cron(self) -> None:
        """Test that a cron expression is returned as is."""
        assert CronDefinition(cron="0 0 * * *").resolve_schedule() == "0 0 * * *"

    def test_on(self) -> None:
        """Test that "on" resolves to an absolute time."""
        definition = CronDefinition(on="2030-06-01T12:00:00Z")
        assert definition.resolve_schedule() == datetime(2030, 6, 1, 12, tzinfo=timezone.utc)
        assert definition.is_one_shot is True

    def test_neither(self) -> None:
        """Test that a schedule is required."""
        with pytest.raises(InvalidDefinitionError) as exc_info:
            CronDefinition(emit=EventOperation(name="tick")).resolve_schedule("job")

        assert 'either "on" or "cron" attribute is required' in str(exc_info.value)
        assert exc_info.value.job_name == "job"

    def test_both(self) -> None:
        """Test that "on" and "cron" are mutually exclusive."""
        with pytest.raises(InvalidDefinitionError, match="mutually exclusive"):
            CronDefinition(cron="* * * * *", on="2030-01-01").resolve_schedule()

    def test_unparseable_on(self) -> None:
        """Test that invalid "on" values are rejected."""
        with pytest.raises(InvalidDefinitionError):
            CronDefinition(on="next tuesday").resolve_schedule()


class TestParseFireTime:
    """Tests for "on" parsing."""

    def test_epoch_milliseconds(self) -> None:
        """Test that numbers are epoch milliseconds."""
        assert parse_fire_time(1_000) == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)

    def test_naive_iso_string(self) -> None:
        """Test that naive strings stay naive."""
        assert parse_fire_time("2030-01-01T08:30:00") == datetime(2030, 1, 1, 8, 30)

    def test_datetime_passthrough(self) -> None:
        """Test that datetimes are used directly."""
        when = datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert parse_fire_time(when) is when

    def test_bool_rejected(self) -> None:
        """Test that booleans are not treated as numbers."""
        with pytest.raises(InvalidDefinitionError):
            parse_fire_time(True)


class TestActions:
    """Tests for declared action ordering."""

    def test_fixed_order(self) -> None:
        """Test that actions come in firing order regardless of declaration."""
        definition = CronDefinition.from_dict({
            "deleteRecord": "c",
            "emit": {"name": "b"},
            "call": {"name": "a"},
        })

        kinds = [kind for kind, _ in definition.actions()]
        assert kinds == [ActionKind.CALL, ActionKind.EMIT, ActionKind.DELETE_RECORD]

    def test_no_actions(self) -> None:
        """Test that a schedule without actions declares nothing."""
        assert CronDefinition(cron="* * * * *").actions() == []
