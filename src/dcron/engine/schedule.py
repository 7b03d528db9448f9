# src/dcron/engine/schedule.py
from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

from dcron.domain.errors import ConfigurationError, InvalidExpression

UTC = timezone.utc

_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}


def now_utc() -> datetime:
    return datetime.now(UTC)


def resolve_timezone(name: str) -> tzinfo:
    if name.strip().upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone: {name!r}", details={"timezone": name}) from e


def _to_croniter_fields(expression: str) -> str:
    """
    Maps the accepted expression forms onto croniter's field order.

    Accepted:
      5 fields: min hour dom month dow
      6 fields: min hour dom month dow year  (second 0)
      7 fields: sec min hour dom month dow year
    croniter wants seconds after day-of-week, followed by the year.
    """
    text = expression.strip()
    if not text:
        raise InvalidExpression("Schedule expression is empty", details={"expression": expression})

    if text.startswith("@"):
        fields = _DESCRIPTORS.get(text.lower())
        if fields is None:
            raise InvalidExpression(
                f"Unknown schedule descriptor: {text}",
                details={"expression": expression},
            )
        return fields

    parts = text.split()
    if len(parts) == 5:
        return " ".join(parts)
    if len(parts) == 6:
        return " ".join([*parts[:5], "0", parts[5]])
    if len(parts) == 7:
        return " ".join([*parts[1:6], parts[0], parts[6]])

    raise InvalidExpression(
        f"Schedule expression must have 5, 6 or 7 fields, got {len(parts)}: {expression!r}",
        details={"expression": expression},
    )


class CronSchedule:
    """
    Next-occurrence computation for one cron expression.

    Construct with ``CronSchedule.parse``; the expression is validated
    up front so that a broken schedule fails at registration time.
    """

    def __init__(self, expression: str, croniter_expression: str, tz: tzinfo) -> None:
        self.expression = expression
        self._croniter_expression = croniter_expression
        self._tz = tz

    @classmethod
    def parse(cls, expression: str, tz_name: str = "UTC") -> "CronSchedule":
        tz = resolve_timezone(tz_name)
        fields = _to_croniter_fields(expression)
        schedule = cls(expression, fields, tz)
        try:
            # Also rejects expressions that can never match (e.g. a past year).
            schedule.next_after(now_utc())
        except (ValueError, KeyError, TypeError) as e:
            raise InvalidExpression(
                f"Invalid schedule expression {expression!r}: {e}",
                details={"expression": expression},
            ) from e
        return schedule

    def next_after(self, after: datetime) -> datetime:
        """Returns the first matching instant strictly after ``after``, in UTC."""
        if after.tzinfo is None:
            after = after.replace(tzinfo=UTC)
        it = croniter(self._croniter_expression, after.astimezone(self._tz))
        nxt = it.get_next(datetime)
        while nxt <= after:
            nxt = it.get_next(datetime)
        return nxt.astimezone(UTC)

    def __repr__(self) -> str:
        return f"CronSchedule({self.expression!r})"
