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

"""Time offsets and DMS CDC position formatting."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union


SERVER_TIME_PREFIX = 'server_time:'
COMMIT_TIME_PREFIX = 'commit_time:'


class TimeUnit(Enum):
    """Length of one unit, in seconds."""

    SECOND = 1
    MINUTE = 60
    HOUR = 60 * 60
    DAY = 24 * 60 * 60


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(date: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if date.tzinfo is None:
        return date.replace(tzinfo=timezone.utc)
    return date.astimezone(timezone.utc)


def get_offset_date(offset: timedelta, date: Optional[datetime] = None) -> datetime:
    """Shift a date (now by default) by an offset."""
    return ensure_utc(date or utc_now()) + offset


def get_past_date_string(count: int, unit: TimeUnit, date: Optional[datetime] = None) -> str:
    """ISO string for `count` units before `date`."""
    return get_offset_date(timedelta(seconds=-count * unit.value), date).isoformat()


def get_future_date_string(count: int, unit: TimeUnit, date: Optional[datetime] = None) -> str:
    """ISO string for `count` units after `date`."""
    return get_offset_date(timedelta(seconds=count * unit.value), date).isoformat()


def get_short_iso_string(date: datetime) -> str:
    """Format as YYYY-MM-DDTHH:MM:SSZ in UTC.

    DMS rejects fractional seconds in CDC positions, so they are dropped.
    """
    return ensure_utc(date).strftime('%Y-%m-%dT%H:%M:%SZ')


def _position_value(date: Union[datetime, str]) -> str:
    return date if isinstance(date, str) else get_short_iso_string(date)


def as_commit_timestamp(date: Union[datetime, str]) -> str:
    """CDC position at a source commit time."""
    return f'{COMMIT_TIME_PREFIX}{_position_value(date)}'


def as_server_timestamp(date: Union[datetime, str]) -> str:
    """CDC position at a source server time."""
    return f'{SERVER_TIME_PREFIX}{_position_value(date)}'


def parse_position_timestamp(position: str) -> Optional[datetime]:
    """Extract the instant from a server_time: or commit_time: position.

    Returns:
        Aware UTC datetime, or None when the position is not time based
    """
    for prefix in (SERVER_TIME_PREFIX, COMMIT_TIME_PREFIX):
        if position.startswith(prefix):
            value = position[len(prefix) :].strip()
            if value.endswith('Z'):
                value = value[:-1] + '+00:00'
            try:
                return ensure_utc(datetime.fromisoformat(value))
            except ValueError:
                return None
    return None
