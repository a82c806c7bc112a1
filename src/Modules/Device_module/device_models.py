"""
Device Models - data models for the blind controller configuration

Covers the wall-clock alarm times, the alarm set kept by the device,
the configuration aggregate and the read-only log entries.
"""
import math
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from loguru import logger


MIN_THRESHOLD = 0
MAX_THRESHOLD = 4095
DEFAULT_THRESHOLD = 300

NO_ALARMS_MESSAGE = "Nenhum alarme configurado"
TOMORROW_SUFFIX = "(amanhã)"

_TIME_PATTERN = re.compile(r"([01]?[0-9]|2[0-3]):([0-5][0-9])")


class InvalidTimeFormat(ValueError):
    """Time string does not match HH:MM"""

    def __init__(self, value):
        super().__init__(f"Invalid time format: {value!r} (use HH:MM, e.g. 07:30)")
        self.value = value


class DuplicateAlarm(ValueError):
    """Alarm already configured for this minute"""

    def __init__(self, time_value: "TimeValue"):
        super().__init__(f"Alarm {time_value} is already configured")
        self.time_value = time_value


@dataclass(frozen=True, order=True)
class TimeValue:
    """Wall-clock time of day (24h, minute precision)"""
    hour: int
    minute: int

    def __post_init__(self):
        if not (0 <= self.hour <= 23 and 0 <= self.minute <= 59):
            raise InvalidTimeFormat(f"{self.hour}:{self.minute}")

    @classmethod
    def parse(cls, text: str) -> "TimeValue":
        """
        Parse a user-entered time.

        Accepts H:MM or HH:MM with hour 0-23 and minute 00-59.

        Raises:
            InvalidTimeFormat: for anything else
        """
        if not isinstance(text, str):
            raise InvalidTimeFormat(text)
        match = _TIME_PATTERN.fullmatch(text)
        if match is None:
            raise InvalidTimeFormat(text)
        return cls(int(match.group(1)), int(match.group(2)))

    @staticmethod
    def normalize(text: str) -> str:
        """Zero-pad hour and minute: '7:3' -> '07:03'"""
        parts = text.split(':') if isinstance(text, str) else []
        if len(parts) != 2 or not all(p.isascii() and p.isdigit() for p in parts):
            raise InvalidTimeFormat(text)
        hours, minutes = parts
        return f"{hours.zfill(2)}:{minutes.zfill(2)}"

    @staticmethod
    def compare(a: "TimeValue", b: "TimeValue") -> int:
        return (a.minutes > b.minutes) - (a.minutes < b.minutes)

    @classmethod
    def from_datetime(cls, value: datetime) -> "TimeValue":
        return cls(value.hour, value.minute)

    @property
    def minutes(self) -> int:
        """Minutes since midnight"""
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class NextAlarm:
    """Result of a next-occurrence query"""
    time: TimeValue
    tomorrow: bool = False

    def describe(self) -> str:
        if self.tomorrow:
            return f"{self.time} {TOMORROW_SUFFIX}"
        return str(self.time)


def _coerce_time(value: Union["TimeValue", str]) -> TimeValue:
    if isinstance(value, TimeValue):
        return value
    return TimeValue.parse(value)


class AlarmSet:
    """
    Ordered, duplicate-free collection of alarm times.

    Instances are immutable: add/remove return a new set. Iteration is
    always in ascending time-of-day order.
    """

    __slots__ = ('_times',)

    def __init__(self, times: Iterable[TimeValue] = ()):
        self._times: Tuple[TimeValue, ...] = tuple(sorted(set(times)))

    @classmethod
    def from_strings(cls, values: Optional[Iterable[str]]) -> "AlarmSet":
        """
        Build a set from the wire representation.

        Entries that cannot be parsed are dropped and logged, duplicates
        collapse into one alarm.
        """
        times: List[TimeValue] = []
        for raw in values or []:
            try:
                times.append(TimeValue.parse(TimeValue.normalize(raw)))
            except InvalidTimeFormat:
                logger.warning(f"Invalid alarm time '{raw}' in remote config; dropping")
        return cls(times)

    def add(self, time_value: Union[TimeValue, str]) -> "AlarmSet":
        """
        Return a new set with the time inserted.

        Raises:
            DuplicateAlarm: if the minute is already present
        """
        time_value = _coerce_time(time_value)
        if time_value in self._times:
            raise DuplicateAlarm(time_value)
        return AlarmSet(self._times + (time_value,))

    def remove(self, time_value: Union[TimeValue, str]) -> "AlarmSet":
        """Return a new set without the time (no-op for non-members)"""
        time_value = _coerce_time(time_value)
        return AlarmSet(t for t in self._times if t != time_value)

    def next_after(self, now_minutes: int) -> Optional[NextAlarm]:
        """
        First alarm strictly after `now_minutes`.

        When every alarm has already passed today the earliest one is
        returned flagged for tomorrow. Returns None for an empty set.
        """
        if not self._times:
            return None
        for time_value in self._times:
            if time_value.minutes > now_minutes:
                return NextAlarm(time_value)
        return NextAlarm(self._times[0], tomorrow=True)

    def to_list(self) -> List[str]:
        return [str(t) for t in self._times]

    def __iter__(self) -> Iterator[TimeValue]:
        return iter(self._times)

    def __len__(self) -> int:
        return len(self._times)

    def __contains__(self, item) -> bool:
        if isinstance(item, str):
            try:
                item = TimeValue.parse(TimeValue.normalize(item))
            except InvalidTimeFormat:
                return False
        return item in self._times

    def __eq__(self, other) -> bool:
        if not isinstance(other, AlarmSet):
            return NotImplemented
        return self._times == other._times

    def __hash__(self) -> int:
        return hash(self._times)

    def __repr__(self) -> str:
        return f"AlarmSet({self.to_list()})"


def clamp_threshold(value: Union[int, float]) -> int:
    """Round and clamp a light threshold into the ADC range"""
    if not math.isfinite(value):
        raise ValueError(f"Light threshold must be a finite number: {value!r}")
    return min(max(int(round(value)), MIN_THRESHOLD), MAX_THRESHOLD)


def parse_threshold_input(text: str) -> int:
    """Threshold typed by the user; non-digits are ignored, empty means minimum"""
    digits = re.sub(r"[^0-9]", "", text or "")
    if not digits:
        return MIN_THRESHOLD
    return clamp_threshold(int(digits))


def _parse_datetime(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            logger.warning(f"Unparseable timestamp '{value}'")
    return None


@dataclass(frozen=True)
class DeviceConfig:
    """Configuration aggregate of one blind controller"""
    device_id: str
    alarms: AlarmSet = field(default_factory=AlarmSet)
    light_threshold: int = DEFAULT_THRESHOLD
    updated_at: Optional[datetime] = None  # server assigned

    def __post_init__(self):
        object.__setattr__(self, 'light_threshold', clamp_threshold(self.light_threshold))

    def with_threshold(self, value: Union[int, float]) -> "DeviceConfig":
        """Copy with the threshold clamped into [0, 4095]"""
        return replace(self, light_threshold=clamp_threshold(value))

    def with_alarms(self, alarms: AlarmSet) -> "DeviceConfig":
        return replace(self, alarms=alarms)

    def next_alarm(self, now: datetime) -> Optional[NextAlarm]:
        return self.alarms.next_after(TimeValue.from_datetime(now).minutes)

    def next_alarm_description(self, now: datetime) -> str:
        """Text for the 'next alarm' card, e.g. '07:30 (amanhã)'"""
        next_alarm = self.next_alarm(now)
        if next_alarm is None:
            return NO_ALARMS_MESSAGE
        return next_alarm.describe()

    def to_payload(self) -> dict:
        """Body of PUT /api/config/{deviceId}"""
        return {
            'alarms': self.alarms.to_list(),
            'lightThreshold': clamp_threshold(self.light_threshold),
        }

    @staticmethod
    def from_dict(data: dict, device_id: Optional[str] = None) -> 'DeviceConfig':
        """Build from the `data` object of the config envelope"""
        if not isinstance(data, dict):
            raise ValueError("Config payload must be an object")

        remote_id = data.get('deviceId')
        if device_id and remote_id and remote_id != device_id:
            raise ValueError(f"Config belongs to device {remote_id}, expected {device_id}")
        resolved_id = device_id or remote_id
        if not resolved_id:
            raise ValueError("Missing deviceId in config data")

        threshold = data.get('lightThreshold')
        if threshold is None:
            threshold = DEFAULT_THRESHOLD
        elif isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise ValueError(f"Invalid lightThreshold: {threshold!r}")

        alarms = data.get('alarms') or []
        if not isinstance(alarms, list):
            raise ValueError(f"Invalid alarms list: {alarms!r}")

        return DeviceConfig(
            device_id=resolved_id,
            alarms=AlarmSet.from_strings(alarms),
            light_threshold=threshold,
            updated_at=_parse_datetime(data.get('updatedAt')),
        )


@dataclass(frozen=True)
class LogEntry:
    """Single reading reported by the device"""
    timestamp: Optional[datetime]
    light: Optional[int]
    alarm_triggered: bool = False
    blind_open: bool = False

    @staticmethod
    def from_dict(data: dict) -> 'LogEntry':
        if not isinstance(data, dict):
            raise ValueError("Log entry must be an object")
        # older firmware reports the LED instead of the servo
        blind_open = data.get('servoOpened')
        if blind_open is None:
            blind_open = data.get('ledOn', False)
        light = data.get('light')
        if isinstance(light, float) and not math.isfinite(light):
            raise ValueError(f"Invalid light reading: {light!r}")
        return LogEntry(
            timestamp=_parse_datetime(data.get('timestamp')),
            light=int(light) if light is not None else None,
            alarm_triggered=bool(data.get('alarmTriggered', False)),
            blind_open=bool(blind_open),
        )


def format_updated_at(value: Optional[datetime]) -> str:
    """'dd/mm HH:MM' or '-'"""
    if value is None:
        return '-'
    if value.tzinfo:
        value = value.astimezone()
    return value.strftime('%d/%m %H:%M')


def format_log_timestamp(value: Optional[datetime]) -> str:
    """'dd/mm HH:MM:SS' or '-'"""
    if value is None:
        return '-'
    if value.tzinfo:
        value = value.astimezone()
    return value.strftime('%d/%m %H:%M:%S')
