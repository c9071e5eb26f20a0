"""Recurring work-hours configuration for a doctor."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agenda.core import config
from agenda.core.errors import InvalidWorkSettings, MalformedAvailability, SchedulingError
from agenda.scheduling.timeofday import TimeRange, parse_range

WEEKDAYS = range(7)


class TimeBlock(BaseModel):
    """User-authored block such as 09:00-12:00, kept as typed."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    def to_range(self) -> TimeRange:
        return parse_range(self.start, self.end)


class WorkSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    slot_duration: int = config.DEFAULT_SLOT_DURATION_MINUTES
    # 0=Sunday .. 6=Saturday
    working_days: dict[int, bool] = Field(default_factory=dict)
    blocks: tuple[TimeBlock, ...] = ()

    @field_validator('slot_duration')
    @classmethod
    def floor_slot_duration(cls, value: int) -> int:
        return max(config.MIN_SLOT_DURATION_MINUTES, value)

    @field_validator('working_days')
    @classmethod
    def validate_working_days(cls, value: dict[int, bool]) -> dict[int, bool]:
        for weekday in value:
            if weekday not in WEEKDAYS:
                raise ValueError('Weekday indices must be between 0 (Sunday) and 6 (Saturday).')
        return {weekday: value.get(weekday, False) for weekday in WEEKDAYS}

    def works_on(self, weekday: int) -> bool:
        return bool(self.working_days.get(weekday, False))


class LegacySchedule(BaseModel):
    """Per-weekday schedule stored on accounts that predate date overrides."""

    model_config = ConfigDict(frozen=True)

    slot_duration: int = config.DEFAULT_SLOT_DURATION_MINUTES
    days: dict[int, tuple[TimeBlock, ...]] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, raw: Mapping[str, Any]) -> 'LegacySchedule':
        if not isinstance(raw, Mapping):
            raise MalformedAvailability(f'Stored schedule must be an object, got {type(raw).__name__}.')

        days = by_weekday(raw.get('days'), 'schedule days')
        return cls(
            slot_duration=raw.get('slotDuration') or config.DEFAULT_SLOT_DURATION_MINUTES,
            days={weekday: tuple(blocks or ()) for weekday, blocks in days.items()},
        )


def by_weekday(raw: Any, field: str) -> dict[int, Any]:
    """Re-key a stored {"0".."6": value} object by integer weekday."""
    if not raw:
        return {}
    if not isinstance(raw, Mapping):
        raise MalformedAvailability(f'Stored {field} must be an object keyed by weekday.')

    result = {}
    for key, value in raw.items():
        try:
            result[int(key)] = value
        except (TypeError, ValueError) as exc:
            raise MalformedAvailability(f'Stored {field} has a non-numeric weekday {key!r}.') from exc
    return result


def default_work_settings() -> WorkSettings:
    return WorkSettings(
        slot_duration=config.DEFAULT_SLOT_DURATION_MINUTES,
        working_days={0: False, 1: True, 2: True, 3: True, 4: True, 5: True, 6: False},
        blocks=(
            TimeBlock(start='09:00', end='12:00'),
            TimeBlock(start='14:00', end='18:00'),
        ),
    )


def merge_with_defaults(raw: dict[str, Any] | None) -> WorkSettings:
    """Fill fields missing from a persisted settings document with defaults."""
    defaults = default_work_settings()
    if not raw:
        return defaults

    working_days = dict(defaults.working_days)
    working_days.update({weekday: bool(flag) for weekday, flag in by_weekday(raw.get('working_days'), 'working days').items()})
    blocks = raw.get('blocks') or defaults.blocks

    return WorkSettings(
        slot_duration=raw.get('slot_duration') or defaults.slot_duration,
        working_days=working_days,
        blocks=tuple(blocks),
    )


def is_valid_block(block: TimeBlock) -> bool:
    try:
        time_range = block.to_range()
    except SchedulingError:
        return False
    return time_range.end > time_range.start


def clean_work_settings(settings: WorkSettings) -> WorkSettings:
    """Strip and validate blocks before a save; at least one must survive."""
    stripped = (TimeBlock(start=block.start.strip(), end=block.end.strip()) for block in settings.blocks)
    blocks = tuple(block for block in stripped if is_valid_block(block))

    if not blocks:
        raise InvalidWorkSettings('Define at least one valid block, for example 09:00 to 12:00.')

    return settings.model_copy(update={'blocks': blocks})
