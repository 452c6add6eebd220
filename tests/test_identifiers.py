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

"""Tests for identifiers module."""

import pytest
from awslabs.dms_replication_scheduler.exceptions import ConfigurationException
from awslabs.dms_replication_scheduler.utils.identifiers import (
    clamp_identifier,
    epoch_millis,
    replication_config_identifier,
    resource_identifier,
    schedule_name,
    timestamp_suffix,
)
from datetime import datetime, timezone


DATE = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


class TestTimestamps:
    """Test name-safe timestamps."""

    def test_timestamp_suffix(self):
        """Test ':' and '.' are replaced."""
        assert timestamp_suffix(DATE) == '2024-01-01T10-00-00-000Z'

    def test_epoch_millis(self):
        """Test milliseconds since the epoch."""
        assert epoch_millis(datetime(2024, 1, 1, tzinfo=timezone.utc)) == '1704067200000'


class TestClampIdentifier:
    """Test identifier length limits."""

    def test_fits_unchanged(self):
        """Test a short identifier is joined as is."""
        assert clamp_identifier('kuali', '1704067200000', 'instance') == (
            'kuali-1704067200000-instance'
        )

    def test_without_suffix(self):
        """Test an empty suffix adds no separator."""
        assert clamp_identifier('kuali', '1704067200000') == 'kuali-1704067200000'

    @pytest.mark.parametrize('prefix_length', [1, 5, 10, 15, 19, 20])
    def test_never_exceeds_limit(self, prefix_length):
        """Test long prefixes trim the timestamp, keeping its trailing digits."""
        prefix = 'p' * prefix_length
        result = clamp_identifier(prefix, '1704067200123', 'instance')
        assert len(result) <= 31
        assert result.startswith(f'{prefix}-')
        assert result.endswith('-instance')
        timestamp = result[len(prefix) + 1 : -len('-instance')]
        assert '1704067200123'.endswith(timestamp)

    def test_no_room(self):
        """Test a prefix that leaves no room for the timestamp."""
        with pytest.raises(ConfigurationException) as exc_info:
            clamp_identifier('p' * 25, '1704067200123', 'instance')
        assert 'PREFIX' in exc_info.value.details['invalid_fields']

    def test_resource_identifier(self):
        """Test DMS resource identifiers."""
        assert resource_identifier('kuali', 'task', DATE) == 'kuali-1704103200000-task'
        assert resource_identifier('kuali', date=DATE) == 'kuali-1704103200000'


class TestNames:
    """Test configuration and schedule names."""

    def test_replication_config_identifier(self):
        """Test configuration identifiers carry type and time."""
        assert replication_config_identifier('kuali', 'cdc', DATE) == (
            'kuali-cdc-2024-01-01T10-00-00-000Z'
        )

    def test_schedule_name(self):
        """Test a schedule name that fits."""
        suffix = timestamp_suffix(DATE)
        assert schedule_name('kuali', 'start-replication', suffix) == (
            f'kuali-start-replication-{suffix}'
        )

    def test_schedule_name_trimmed(self):
        """Test the logical part is trimmed, keeping prefix and suffix."""
        suffix = timestamp_suffix(DATE)
        name = schedule_name('kuali-research-coeus', 'x' * 40, suffix)
        assert len(name) == 64
        assert name.startswith('kuali-research-coeus-x')
        assert name.endswith(suffix)
