"""Cron job definitions.

A definition record in the registry describes when a job fires and
which side effects it performs. The record is a mapping with camelCase
keys:

    {
        "cron": "0 */5 * * * *",          # recurring, or
        "on": "2026-01-01T00:00:00Z",     # one-shot
        "call": {"name": "reports/build", "data": {...}},
        "emit": {"name": "reports/tick", "data": 1},
        "setRecord": {"name": "status/reports", "data": {...}},
        "updateRecord": {"name": "status/reports", "data": {"key": "value"}},
        "deleteRecord": "tmp/reports",
    }

Exactly one of "cron" or "on" is required. Any subset of the action keys
may be present; every declared action runs on each firing.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from cronbridge.scheduler.exceptions import InvalidDefinitionError

# A resolved schedule is a cron expression or an absolute fire time
Schedule = Union[str, datetime]


class ActionKind(Enum):
    """Side effects a definition can declare, in firing order."""

    CALL = "call"
    EMIT = "emit"
    SET_RECORD = "setRecord"
    UPDATE_RECORD = "updateRecord"
    DELETE_RECORD = "deleteRecord"


@dataclass
class CallOperation:
    """Invoke a remote procedure with an opaque payload."""

    name: str
    data: Any = None


@dataclass
class EventOperation:
    """Emit an event with an opaque payload."""

    name: str
    data: Any = None


@dataclass
class RecordOperation:
    """Write data to a remote record.

    Used for both full replacement (setRecord) and per-field
    updates (updateRecord).
    """

    name: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CronDefinition:
    """Schedule and actions of one cron job.

    Attributes:
        cron: Cron expression for recurring jobs (5 or 6 fields)
        on: Absolute fire time for one-shot jobs (ISO-8601 string,
            datetime, or epoch milliseconds)
        call: RPC to invoke on each firing
        emit: Event to emit on each firing
        set_record: Record to overwrite on each firing
        update_record: Record fields to write on each firing
        delete_record: Name of a record to delete on each firing
    """

    cron: Optional[str] = None
    on: Optional[Union[str, int, float, datetime]] = None
    call: Optional[CallOperation] = None
    emit: Optional[EventOperation] = None
    set_record: Optional[RecordOperation] = None
    update_record: Optional[RecordOperation] = None
    delete_record: Optional[str] = None

    @classmethod
    def from_dict(
        cls,
        data: Optional[Mapping[str, Any]],
        name: Optional[str] = None,
    ) -> "CronDefinition":
        """Build a definition from a registry record.

        Args:
            data: Record content; None or an empty mapping yields an
                empty definition
            name: Job name, used in error messages

        Returns:
            The parsed definition

        Raises:
            InvalidDefinitionError: If the record or an action payload
                has the wrong shape
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidDefinitionError(
                f"Definition must be a mapping, got {type(data).__name__}",
                job_name=name,
            )

        cron = data.get("cron") or None
        if cron is not None and not isinstance(cron, str):
            raise InvalidDefinitionError('"cron" must be a string', job_name=name)

        on = data.get("on")
        if on == "":
            on = None

        delete_record = data.get("deleteRecord") or None
        if delete_record is not None and not isinstance(delete_record, str):
            raise InvalidDefinitionError('"deleteRecord" must be a record name', job_name=name)

        return cls(
            cron=cron,
            on=on,
            call=_parse_payload(data, "call", CallOperation, name),
            emit=_parse_payload(data, "emit", EventOperation, name),
            set_record=_parse_record_operation(data, "setRecord", name),
            update_record=_parse_record_operation(data, "updateRecord", name),
            delete_record=delete_record,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the registry record format."""
        result: Dict[str, Any] = {}
        if self.cron is not None:
            result["cron"] = self.cron
        if self.on is not None:
            result["on"] = self.on.isoformat() if isinstance(self.on, datetime) else self.on
        if self.call:
            result["call"] = {"name": self.call.name, "data": self.call.data}
        if self.emit:
            result["emit"] = {"name": self.emit.name, "data": self.emit.data}
        if self.set_record:
            result["setRecord"] = {"name": self.set_record.name, "data": dict(self.set_record.data)}
        if self.update_record:
            result["updateRecord"] = {
                "name": self.update_record.name,
                "data": dict(self.update_record.data),
            }
        if self.delete_record:
            result["deleteRecord"] = self.delete_record
        return result

    @property
    def is_one_shot(self) -> bool:
        """Check if the definition fires once at an absolute time."""
        return self.on is not None

    def resolve_schedule(self, name: Optional[str] = None) -> Schedule:
        """Resolve the schedule this definition declares.

        Args:
            name: Job name, used in error messages

        Returns:
            The cron expression, or the absolute fire time for "on"

        Raises:
            InvalidDefinitionError: If neither or both of "cron" and "on"
                are set, or "on" cannot be parsed
        """
        if self.on is not None and self.cron is not None:
            raise InvalidDefinitionError(
                'Invalid cron definition: "on" and "cron" are mutually exclusive',
                job_name=name,
            )
        if self.on is not None:
            return parse_fire_time(self.on, name)
        if self.cron is not None:
            return self.cron
        raise InvalidDefinitionError(
            'Invalid cron definition: either "on" or "cron" attribute is required',
            job_name=name,
        )

    def actions(self) -> List[Tuple[ActionKind, Any]]:
        """Get the declared actions in firing order."""
        declared = [
            (ActionKind.CALL, self.call),
            (ActionKind.EMIT, self.emit),
            (ActionKind.SET_RECORD, self.set_record),
            (ActionKind.UPDATE_RECORD, self.update_record),
            (ActionKind.DELETE_RECORD, self.delete_record),
        ]
        return [(kind, operation) for kind, operation in declared if operation]


def parse_fire_time(value: Union[str, int, float, datetime], name: Optional[str] = None) -> datetime:
    """Parse the "on" attribute of a definition.

    Numbers are epoch milliseconds. Strings are ISO-8601; a trailing "Z"
    is accepted. Naive results are left naive and interpreted in the
    scheduler's timezone.

    Raises:
        InvalidDefinitionError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        raise InvalidDefinitionError(f'Invalid "on" time: {value!r}', job_name=name)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidDefinitionError(f'Invalid "on" time: {value!r} ({e})', job_name=name) from e
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidDefinitionError(f'Invalid "on" time: {value!r}', job_name=name) from e
    raise InvalidDefinitionError(f'Invalid "on" time: {value!r}', job_name=name)


def _parse_payload(
    data: Mapping[str, Any],
    key: str,
    operation_cls: type,
    name: Optional[str],
) -> Any:
    payload = data.get(key)
    if not payload:
        return None
    if not isinstance(payload, Mapping) or not payload.get("name"):
        raise InvalidDefinitionError(f'"{key}" requires a "name"', job_name=name)
    return operation_cls(name=str(payload["name"]), data=payload.get("data"))


def _parse_record_operation(
    data: Mapping[str, Any],
    key: str,
    name: Optional[str],
) -> Optional[RecordOperation]:
    operation = _parse_payload(data, key, RecordOperation, name)
    if operation is None:
        return None
    if operation.data is None:
        operation.data = {}
    if not isinstance(operation.data, Mapping):
        raise InvalidDefinitionError(f'"{key}.data" must be a mapping', job_name=name)
    operation.data = dict(operation.data)
    return operation
