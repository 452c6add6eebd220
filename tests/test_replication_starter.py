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

"""Tests for replication_starter module."""

import pytest
from awslabs.dms_replication_scheduler.exceptions import (
    ConfigurationException,
    PreconditionException,
)
from awslabs.dms_replication_scheduler.models import ReplicationScope, ReplicationType
from awslabs.dms_replication_scheduler.utils.replication_starter import ReplicationStarter
from datetime import datetime, timedelta, timezone


def _with_type(mock_dms_client, replication_type):
    def call_api(operation, **kwargs):
        if operation == 'describe_replication_configs':
            return {'ReplicationConfigs': [{'ReplicationType': replication_type}]}
        return {}

    mock_dms_client.call_api.side_effect = call_api


@pytest.fixture
def starter(mock_config, mock_dms_client, mock_delayed_execution, clock):
    """Provide a standard scope starter."""
    return ReplicationStarter(
        mock_config, mock_dms_client, mock_delayed_execution, ReplicationScope.STANDARD, clock
    )


def _start_request(mock_dms_client):
    calls = [c for c in mock_dms_client.call_api.call_args_list if c.args[0] == 'start_replication']
    assert len(calls) <= 1
    return calls[0].kwargs if calls else None


class TestResolveStopTime:
    """Test stop time precedence."""

    def test_custom_duration_wins(self, starter, now):
        """Test a custom duration beats an explicit stop time."""
        stop = starter.resolve_stop_time(
            ReplicationType.CDC, now + timedelta(hours=5), custom_duration_minutes=30
        )
        assert stop == now + timedelta(minutes=30)

    def test_explicit_stop_time(self, starter, now):
        """Test an explicit stop time beats the configured duration."""
        stop_time = datetime(2024, 1, 1, 14, 0)
        assert starter.resolve_stop_time(ReplicationType.CDC, stop_time) == datetime(
            2024, 1, 1, 14, 0, tzinfo=timezone.utc
        )

    def test_configured_duration(self, starter, now):
        """Test the duration configured for the type."""
        assert starter.resolve_stop_time(ReplicationType.CDC) == now + timedelta(minutes=45)
        assert starter.resolve_stop_time(ReplicationType.FULL_LOAD_AND_CDC) == now + timedelta(
            minutes=180
        )

    def test_smoke_test_cap(self, mock_config, mock_dms_client, mock_delayed_execution, clock, now):
        """Test smoke tests cap the configured duration."""
        starter = ReplicationStarter(
            mock_config, mock_dms_client, mock_delayed_execution, 'smoke-test', clock
        )
        assert starter.resolve_stop_time(ReplicationType.FULL_LOAD_AND_CDC) == now + timedelta(
            minutes=35
        )
        assert starter.resolve_stop_time(ReplicationType.CDC, custom_duration_minutes=90) == (
            now + timedelta(minutes=90)
        )


class TestStart:
    """Test starting a replication."""

    def test_full_load_and_cdc(self, starter, mock_dms_client, mock_delayed_execution, config_arn, now):
        """Test the start request and the scheduled deletion."""
        _with_type(mock_dms_client, 'full-load-and-cdc')

        result = starter.start(config_arn)

        assert _start_request(mock_dms_client) == {
            'ReplicationConfigArn': config_arn,
            'StartReplicationType': 'start-replication',
            'CdcStopPosition': 'server_time:2024-01-01T12:00:00Z',
        }
        mock_delayed_execution.schedule.assert_called_once()
        kwargs = mock_delayed_execution.schedule.call_args.kwargs
        assert kwargs['target_arn'] == starter.config.stop_replication_function_arn
        assert kwargs['payload']['ReplicationConfigArn'] == config_arn
        assert kwargs['payload']['isSmokeTest'] is False
        assert kwargs['fire_at'] == now + timedelta(minutes=185)
        assert kwargs['name'] == 'delete-replication'
        assert result.replication_type == ReplicationType.FULL_LOAD_AND_CDC
        assert result.cdc_stop_position == 'server_time:2024-01-01T12:00:00Z'

    def test_cdc_with_position(self, starter, mock_dms_client, config_arn):
        """Test a CDC start carries its start position."""
        _with_type(mock_dms_client, 'cdc')

        starter.start(config_arn, cdc_start_position='server_time:2024-01-01T08:00:00Z')

        request = _start_request(mock_dms_client)
        assert request['CdcStartPosition'] == 'server_time:2024-01-01T08:00:00Z'
        assert request['CdcStopPosition'] == 'server_time:2024-01-01T09:45:00Z'

    def test_cdc_without_position(self, starter, mock_dms_client, mock_delayed_execution, config_arn):
        """Test a CDC start without a position is rejected before starting."""
        _with_type(mock_dms_client, 'cdc')
        with pytest.raises(PreconditionException):
            starter.start(config_arn)
        assert _start_request(mock_dms_client) is None
        mock_delayed_execution.schedule.assert_not_called()

    def test_full_load_has_no_stop_position(
        self, starter, mock_dms_client, mock_delayed_execution, config_arn, now
    ):
        """Test a pure full load runs to completion but is still cleaned up."""
        _with_type(mock_dms_client, 'full-load')

        starter.start(config_arn)

        assert 'CdcStopPosition' not in _start_request(mock_dms_client)
        assert mock_delayed_execution.schedule.call_args.kwargs['fire_at'] == now + timedelta(
            minutes=185
        )

    def test_dry_run(self, starter, mock_dms_client, mock_delayed_execution, config_arn):
        """Test a dry run does not start, and schedules in dry run mode."""
        _with_type(mock_dms_client, 'full-load-and-cdc')

        result = starter.start(config_arn, dry_run=True)

        assert _start_request(mock_dms_client) is None
        assert mock_delayed_execution.schedule.call_args.kwargs['dry_run'] is True
        assert result.dry_run is True

    def test_requires_arn(self, starter, mock_dms_client):
        """Test an empty configuration ARN."""
        with pytest.raises(PreconditionException):
            starter.start('')
        mock_dms_client.call_api.assert_not_called()

    def test_requires_configuration(self, starter, mock_config, mock_dms_client, config_arn):
        """Test the stop function must be configured before anything starts."""
        mock_config.stop_replication_function_arn = None
        with pytest.raises(ConfigurationException):
            starter.start(config_arn)
        mock_dms_client.call_api.assert_not_called()
