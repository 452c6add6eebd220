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

"""Tests for time_utils module."""

from awslabs.dms_replication_scheduler.utils.time_utils import (
    TimeUnit,
    as_commit_timestamp,
    as_server_timestamp,
    ensure_utc,
    get_future_date_string,
    get_offset_date,
    get_past_date_string,
    get_short_iso_string,
    parse_position_timestamp,
)
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo


BASE = datetime(2024, 1, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)


class TestOffsets:
    """Test date offsets."""

    def test_offset_date(self):
        """Test shifting a date."""
        assert get_offset_date(timedelta(hours=2), BASE) == BASE + timedelta(hours=2)

    def test_past_and_future_strings(self):
        """Test ISO strings for unit offsets."""
        assert get_past_date_string(1, TimeUnit.DAY, BASE).startswith('2023-12-31T10:00:00')
        assert get_future_date_string(90, TimeUnit.MINUTE, BASE).startswith(
            '2024-01-01T11:30:00'
        )

    def test_ensure_utc(self):
        """Test naive dates are UTC and aware dates are converted."""
        naive = datetime(2024, 1, 1, 10, 0)
        assert ensure_utc(naive).tzinfo == timezone.utc
        local = datetime(2024, 1, 1, 5, 0, tzinfo=ZoneInfo('America/New_York'))
        assert ensure_utc(local) == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


class TestPositions:
    """Test CDC position formatting and parsing."""

    def test_short_iso_drops_fraction(self):
        """Test fractional seconds are dropped."""
        assert get_short_iso_string(BASE) == '2024-01-01T10:00:00Z'

    def test_server_timestamp(self):
        """Test server_time positions."""
        assert as_server_timestamp(BASE) == 'server_time:2024-01-01T10:00:00Z'

    def test_commit_timestamp(self):
        """Test commit_time positions."""
        assert as_commit_timestamp(BASE) == 'commit_time:2024-01-01T10:00:00Z'

    def test_string_passes_through(self):
        """Test a preformatted value is used as is."""
        assert as_server_timestamp('2024-01-01T10:00:00') == 'server_time:2024-01-01T10:00:00'

    def test_parse_server_time(self):
        """Test extracting the instant of a time based position."""
        assert parse_position_timestamp('server_time:2024-01-01T10:00:00Z') == datetime(
            2024, 1, 1, 10, 0, tzinfo=timezone.utc
        )
        assert parse_position_timestamp('commit_time:2024-01-01T10:00:00') == datetime(
            2024, 1, 1, 10, 0, tzinfo=timezone.utc
        )

    def test_parse_other_positions(self):
        """Test positions that are not time based."""
        assert parse_position_timestamp('checkpoint:V1#27#0000/1234') is None
        assert parse_position_timestamp('server_time:yesterday') is None
