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

"""Names and identifiers for DMS resources and EventBridge schedules."""

from ..consts import RESOURCE_IDENTIFIER_MAX_LENGTH, SCHEDULE_NAME_MAX_LENGTH
from ..exceptions import ConfigurationException
from .time_utils import ensure_utc, utc_now
from datetime import datetime
from typing import Optional


def timestamp_suffix(date: Optional[datetime] = None) -> str:
    """ISO timestamp with ':' and '.' replaced so it is usable in a name."""
    iso = ensure_utc(date or utc_now()).isoformat(timespec='milliseconds')
    return iso.replace('+00:00', 'Z').replace(':', '-').replace('.', '-')


def epoch_millis(date: Optional[datetime] = None) -> str:
    """Milliseconds since the epoch, as a string."""
    return str(int(ensure_utc(date or utc_now()).timestamp() * 1000))


def clamp_identifier(
    prefix: str,
    timestamp: str,
    suffix: str = '',
    max_length: int = RESOURCE_IDENTIFIER_MAX_LENGTH,
) -> str:
    """Join prefix, timestamp and suffix with '-' within max_length characters.

    Only the timestamp is shortened, keeping its trailing (most variable) digits.

    Raises:
        ConfigurationException: Prefix and suffix alone do not fit
    """
    fixed = len(prefix) + 1 + (len(suffix) + 1 if suffix else 0)
    room = max_length - fixed
    if room < 1:
        raise ConfigurationException(
            f'Prefix "{prefix}" leaves no room for a unique identifier '
            f'within {max_length} characters',
            invalid_fields={'PREFIX': prefix},
        )

    trimmed = timestamp[-room:]
    return '-'.join(part for part in (prefix, trimmed, suffix) if part)


def replication_config_identifier(
    prefix: str, replication_type: str, date: Optional[datetime] = None
) -> str:
    """Identifier of a serverless replication configuration."""
    return f'{prefix}-{replication_type}-{timestamp_suffix(date)}'


def resource_identifier(prefix: str, kind: str = '', date: Optional[datetime] = None) -> str:
    """Short DMS resource identifier, unique per millisecond."""
    return clamp_identifier(prefix, epoch_millis(date), kind)


def schedule_name(prefix: str, name: str, suffix: str) -> str:
    """Name of a one-time schedule, trimmed in its logical part to fit."""
    overflow = len(prefix) + len(name) + len(suffix) + 2 - SCHEDULE_NAME_MAX_LENGTH
    if overflow > 0:
        name = name[: max(len(name) - overflow, 1)]
    return f'{prefix}-{name}-{suffix}'[:SCHEDULE_NAME_MAX_LENGTH]
