"""Five-field cron expressions evaluated in UTC."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import FrozenSet

__all__ = ["CronExpression"]

# (name, minimum, maximum)
_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day_of_month", 1, 31),
    ("month", 1, 12),
    ("day_of_week", 0, 6),
)

_MONTH_NAMES = {
    name: index
    for index, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}
_DAY_NAMES = {name: index for index, name in enumerate(["sun", "mon", "tue", "wed", "thu", "fri", "sat"])}

# Bounded search horizon for next_after(); covers leap-day schedules.
_MAX_LOOKAHEAD = timedelta(days=366 * 5)


def _parse_value(token: str, name: str, aliases: dict[str, int]) -> int:
    lowered = token.lower()
    if lowered in aliases:
        return aliases[lowered]
    try:
        value = int(token)
    except ValueError as exc:
        raise ValueError(f"invalid {name} value '{token}'") from exc
    if name == "day_of_week" and value == 7:
        return 0
    return value


def _parse_field(text: str, name: str, low: int, high: int) -> FrozenSet[int]:
    aliases = _MONTH_NAMES if name == "month" else _DAY_NAMES if name == "day_of_week" else {}
    values: set[int] = set()
    for part in text.split(","):
        if not part:
            raise ValueError(f"empty entry in {name} field")
        step = 1
        if "/" in part:
            part, step_text = part.split("/", 1)
            try:
                step = int(step_text)
            except ValueError as exc:
                raise ValueError(f"invalid step '{step_text}' in {name} field") from exc
            if step <= 0:
                raise ValueError(f"step must be positive in {name} field")

        if part == "*":
            start, end = low, high
        elif "-" in part:
            start_text, end_text = part.split("-", 1)
            start = _parse_value(start_text, name, aliases)
            end = _parse_value(end_text, name, aliases)
        else:
            start = _parse_value(part, name, aliases)
            end = high if step != 1 else start

        if start < low or end > high or start > end:
            raise ValueError(f"{name} range {start}-{end} outside {low}-{high}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


@dataclass(frozen=True, slots=True)
class CronExpression:
    """Parsed cron schedule. Day-of-month and day-of-week follow Vixie cron OR rules."""

    text: str
    minutes: FrozenSet[int]
    hours: FrozenSet[int]
    days_of_month: FrozenSet[int]
    months: FrozenSet[int]
    days_of_week: FrozenSet[int]
    dom_restricted: bool
    dow_restricted: bool

    @classmethod
    def parse(cls, text: str) -> "CronExpression":
        parts = text.split()
        if len(parts) != len(_FIELDS):
            raise ValueError(f"expected 5 fields, got {len(parts)}")
        parsed = [
            _parse_field(part, name, low, high)
            for part, (name, low, high) in zip(parts, _FIELDS)
        ]
        return cls(
            text=" ".join(parts),
            minutes=parsed[0],
            hours=parsed[1],
            days_of_month=parsed[2],
            months=parsed[3],
            days_of_week=parsed[4],
            dom_restricted=not parts[2].startswith("*"),
            dow_restricted=not parts[4].startswith("*"),
        )

    def matches(self, moment: datetime) -> bool:
        if moment.minute not in self.minutes or moment.hour not in self.hours:
            return False
        if moment.month not in self.months:
            return False
        return self._day_matches(moment)

    def next_after(self, moment: datetime) -> datetime:
        """Return the first fire time strictly after ``moment`` (UTC)."""
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        moment = moment.astimezone(timezone.utc)
        candidate = moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
        horizon = candidate + _MAX_LOOKAHEAD

        while candidate <= horizon:
            if candidate.month not in self.months:
                candidate = _first_of_next_month(candidate)
                continue
            if not self._day_matches(candidate):
                candidate = candidate.replace(hour=0, minute=0) + timedelta(days=1)
                continue
            if candidate.hour not in self.hours:
                candidate = candidate.replace(minute=0) + timedelta(hours=1)
                continue
            if candidate.minute not in self.minutes:
                candidate += timedelta(minutes=1)
                continue
            return candidate
        raise ValueError(f"cron expression '{self.text}' never fires")

    def _day_matches(self, moment: datetime) -> bool:
        dom_ok = moment.day in self.days_of_month
        # Python: Monday=0; cron: Sunday=0
        dow_ok = (moment.weekday() + 1) % 7 in self.days_of_week
        if self.dom_restricted and self.dow_restricted:
            return dom_ok or dow_ok
        return dom_ok and dow_ok

    def __str__(self) -> str:
        return self.text


def _first_of_next_month(moment: datetime) -> datetime:
    if moment.month == 12:
        return moment.replace(year=moment.year + 1, month=1, day=1, hour=0, minute=0)
    return moment.replace(month=moment.month + 1, day=1, hour=0, minute=0)
