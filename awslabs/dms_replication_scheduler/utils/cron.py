# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Cron expression handling.

Recurring expressions use the classic five field syntax, or six fields with a
leading seconds field:

    [second] minute hour day-of-month month day-of-week

One-time EventBridge schedules use the AWS syntax instead, always in UTC:

    cron(minute hour day-of-month month ? year)
"""

import re
from ..exceptions import InvalidCronException
from .time_utils import ensure_utc, utc_now
from croniter import croniter
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


SINGLE_SHOT_PATTERN = re.compile(r'^cron\((.*)\)$')


class Cron:
    """A recurring cron expression evaluated in an optional IANA timezone."""

    def __init__(self, expression: str, local_timezone: Optional[str] = None):
        """Parse and validate the expression.

        Args:
            expression: Five or six field cron expression
            local_timezone: IANA timezone the fields are expressed in, UTC when omitted

        Raises:
            InvalidCronException: Expression or timezone is not valid
        """
        self.expression = (expression or '').strip()
        self.local_timezone = local_timezone

        try:
            self.tz = ZoneInfo(local_timezone) if local_timezone else timezone.utc
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise InvalidCronException(
                f'Unknown timezone: {local_timezone}', expression=self.expression
            ) from e

        self._seconds_first = len(self.expression.split()) == 6
        # Parse once up front so that a bad expression fails at construction.
        self._iterator(utc_now())

    def _iterator(self, now: datetime) -> croniter:
        try:
            return croniter(
                self.expression,
                ensure_utc(now).astimezone(self.tz),
                second_at_beginning=self._seconds_first,
            )
        except (ValueError, KeyError) as e:
            raise InvalidCronException(
                f'Invalid cron expression: {self.expression}', expression=self.expression
            ) from e

    def next_occurrence(self, now: Optional[datetime] = None) -> datetime:
        """First occurrence strictly after now, in UTC."""
        return self._iterator(now or utc_now()).get_next(datetime).astimezone(timezone.utc)

    def previous_occurrence(self, now: Optional[datetime] = None) -> datetime:
        """Last occurrence strictly before now, in UTC."""
        return self._iterator(now or utc_now()).get_prev(datetime).astimezone(timezone.utc)

    def seconds_to_next_occurrence(self, now: Optional[datetime] = None) -> int:
        """Whole seconds until the next occurrence."""
        now = ensure_utc(now or utc_now())
        return round((self.next_occurrence(now) - now).total_seconds())

    def minutes_to_next_occurrence(self, now: Optional[datetime] = None) -> int:
        """Whole minutes until the next occurrence."""
        return round(self.seconds_to_next_occurrence(now) / 60)

    def hours_to_next_occurrence(self, now: Optional[datetime] = None) -> int:
        """Whole hours until the next occurrence."""
        return round(self.seconds_to_next_occurrence(now) / 3600)

    def days_to_next_occurrence(self, now: Optional[datetime] = None) -> int:
        """Whole days until the next occurrence."""
        return round(self.seconds_to_next_occurrence(now) / 86400)


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if value < low or value > high:
        raise InvalidCronException(f'{name} must be between {low} and {high}')


def daily_at_time_expression(hour: int, minute: int = 0, second: int = 0) -> str:
    """Six field expression firing every day at the given time."""
    _check_range('Hour', hour, 0, 23)
    _check_range('Minute', minute, 0, 59)
    _check_range('Second', second, 0, 59)
    return f'{second} {minute} {hour} * * *'


def daily_at_hour_expression(hour: int) -> str:
    """Six field expression firing every day on the hour."""
    _check_range('Hour', hour, 0, 23)
    return f'0 0 {hour} * * *'


def _floor_minute(instant: datetime) -> datetime:
    return instant.replace(second=0, microsecond=0)


def safe_expiration(instant: datetime, now: Optional[datetime] = None) -> datetime:
    """Move an instant far enough ahead to survive minute truncation.

    A single-shot cron only resolves to the minute, so an instant in the current
    minute is pushed two minutes ahead and one in the next minute is pushed one
    minute ahead. The truncated result is always at least one minute after now.
    """
    instant = ensure_utc(instant)
    now = ensure_utc(now or utc_now())
    current_minute = _floor_minute(now)
    instant_minute = _floor_minute(instant)

    if instant_minute <= current_minute:
        return max(instant, now) + timedelta(minutes=2)
    if instant_minute == current_minute + timedelta(minutes=1):
        return instant + timedelta(minutes=1)
    return instant


def single_shot_expression(instant: datetime, now: Optional[datetime] = None) -> str:
    """EventBridge expression firing once, at or just after the instant."""
    safe = safe_expiration(instant, now)
    return f'cron({safe.minute} {safe.hour} {safe.day} {safe.month} ? {safe.year})'


def instant_from_single_shot(expression: str) -> datetime:
    """Decode a single-shot expression back to the UTC instant it fires at.

    Raises:
        InvalidCronException: Not a six field single-shot expression
    """
    match = SINGLE_SHOT_PATTERN.match(expression.strip())
    body = match.group(1) if match else expression.strip()
    parts = body.split()
    if len(parts) != 6:
        raise InvalidCronException(f'Invalid cron expression: {expression}', expression=expression)

    minute, hour, day, month, _, year = parts
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), tzinfo=timezone.utc
        )
    except ValueError as e:
        raise InvalidCronException(
            f'Invalid cron expression: {expression}', expression=expression
        ) from e
