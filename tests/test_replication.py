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

"""Tests for replication module."""

import json
import pytest
from awslabs.dms_replication_scheduler.models import ReplicationStatus, ReplicationType, StopReason
from awslabs.dms_replication_scheduler.utils.replication import (
    BUSY_STATUSES,
    FAILURE_STOP_REASONS,
    SUCCESS_STOP_REASONS,
    Replication,
)
from datetime import datetime, timezone
from unittest.mock import Mock


def _replication(mock_dms_client, config_arn, record, ignore_last_error=False):
    return Replication(mock_dms_client, config_arn, record, ignore_last_error)


class TestGetInstance:
    """Test looking up the last replication."""

    def test_found(self, mock_dms_client, config_arn, sample_replication):
        """Test the first record is used."""
        mock_dms_client.call_api.return_value = {'Replications': [sample_replication]}

        replication = Replication.get_instance(mock_dms_client, config_arn)

        assert replication.status == 'stopped'
        mock_dms_client.call_api.assert_called_once_with(
            'describe_replications',
            Filters=[{'Name': 'replication-config-arn', 'Values': [config_arn]}],
        )

    def test_not_found_has_never_run(self, mock_dms_client, config_arn):
        """Test a configuration without replications counts as never run."""
        mock_dms_client.call_api.return_value = {'Replications': []}

        replication = Replication.get_instance(mock_dms_client, config_arn)

        assert replication.record == {}
        assert replication.has_never_run is True
        assert replication.arn == config_arn

    def test_ignore_last_error_kept(self, mock_dms_client, config_arn):
        """Test the failure policy travels with the instance."""
        mock_dms_client.call_api.return_value = {'Replications': []}
        replication = Replication.get_instance(mock_dms_client, config_arn, True)
        assert replication.ignore_last_error is True


class TestAccessors:
    """Test record accessors."""

    def test_stopped_time_is_earliest(self, mock_dms_client, config_arn, make_replication_record):
        """Test the earlier of the two stop timestamps is used."""
        record = make_replication_record(ReplicationLastStopTime='2024-01-01T09:59:00Z')
        replication = _replication(mock_dms_client, config_arn, record)
        assert replication.stopped_time == datetime(2024, 1, 1, 9, 59, tzinfo=timezone.utc)

    def test_stopped_time_missing(self, mock_dms_client, config_arn):
        """Test no stop time on a record that never stopped."""
        replication = _replication(mock_dms_client, config_arn, {'Status': 'running'})
        assert replication.stopped_time is None

    def test_failure_message(self, mock_dms_client, config_arn, make_replication_record):
        """Test the failure message is JSON with reason and messages."""
        record = make_replication_record(
            Status='failed', StopReason='FATAL_ERROR', FailureMessages=['ORA-01291']
        )
        message = json.loads(_replication(mock_dms_client, config_arn, record).failure_message)
        assert message == {'StopReason': 'FATAL_ERROR', 'FailureMessages': ['ORA-01291']}

    def test_empty_values_are_none(self, mock_dms_client, config_arn):
        """Test empty strings read as absent."""
        replication = _replication(
            mock_dms_client, config_arn, {'RecoveryCheckpoint': '', 'CdcStopPosition': ''}
        )
        assert replication.recovery_checkpoint is None
        assert replication.cdc_stop_position is None
        assert replication.replication_type is None
        assert replication.full_load_progress_percent == 0


class TestClassification:
    """Test classification predicates."""

    @pytest.mark.parametrize('replication_type', list(ReplicationType))
    @pytest.mark.parametrize('status', list(ReplicationStatus))
    @pytest.mark.parametrize('stop_reason', list(StopReason) + [None])
    def test_partition(self, mock_dms_client, config_arn, replication_type, status, stop_reason):
        """Test a run is never both failed and succeeded, and busy runs are neither."""
        record = {
            'ReplicationType': replication_type.value,
            'Status': status.value,
            'ReplicationStats': {'StartDate': '2024-01-01T07:00:00Z'},
        }
        if stop_reason is not None:
            record['StopReason'] = f'Stop Reason {stop_reason.value}'
        replication = _replication(mock_dms_client, config_arn, record)

        assert not (replication.has_failed and replication.has_succeeded)
        if replication.is_busy:
            assert not replication.has_succeeded
            assert not replication.has_failed
        if replication.has_succeeded:
            assert status == ReplicationStatus.STOPPED
            assert stop_reason in SUCCESS_STOP_REASONS[replication_type]
        if status == ReplicationStatus.FAILED:
            assert replication.has_failed
        assert replication.has_never_run is False

    def test_busy_statuses(self, mock_dms_client, config_arn):
        """Test which statuses are busy."""
        assert 'running' in BUSY_STATUSES
        assert 'stopped' not in BUSY_STATUSES
        assert 'failed' not in BUSY_STATUSES
        for status in ('starting', 'creating', 'stopping', 'deleting', 'modifying', 'moving'):
            assert _replication(mock_dms_client, config_arn, {'Status': status}).is_busy

    @pytest.mark.parametrize('reason', FAILURE_STOP_REASONS)
    def test_failure_reasons(self, mock_dms_client, config_arn, reason, make_replication_record):
        """Test a stopped run with a failure code has failed, restarts included."""
        record = make_replication_record(StopReason=f'Stop Reason {reason.value}')
        replication = _replication(mock_dms_client, config_arn, record)
        assert replication.has_failed
        assert not replication.has_succeeded

    @pytest.mark.parametrize(
        'replication_type,reason,succeeded',
        [
            ('full-load', 'FULL_LOAD_ONLY_FINISHED', True),
            ('full-load', 'STOPPED_AT_SERVER_TIME', False),
            ('cdc', 'STOPPED_AT_SERVER_TIME', True),
            ('cdc', 'STOPPED_AFTER_FULL_LOAD', False),
            ('full-load-and-cdc', 'STOPPED_AFTER_FULL_LOAD', True),
            ('full-load-and-cdc', 'NORMAL', True),
            ('full-load-and-cdc', 'STOPPED_AFTER_DDL_APPLY', False),
        ],
    )
    def test_success_depends_on_type(
        self,
        mock_dms_client,
        config_arn,
        make_replication_record,
        replication_type,
        reason,
        succeeded,
    ):
        """Test success reasons are specific to the replication type."""
        record = make_replication_record(
            ReplicationType=replication_type, StopReason=f'Stop Reason {reason}'
        )
        assert _replication(mock_dms_client, config_arn, record).has_succeeded is succeeded

    def test_failed_status(self, mock_dms_client, config_arn, make_replication_record):
        """Test a failed status has failed whatever the reason."""
        record = make_replication_record(Status='failed', StopReason='NORMAL')
        assert _replication(mock_dms_client, config_arn, record).has_failed

    def test_created_has_never_run(self, mock_dms_client, config_arn):
        """Test a created replication without stats has never run."""
        replication = _replication(
            mock_dms_client, config_arn, {'Status': 'created', 'ReplicationStats': {}}
        )
        assert replication.has_never_run

    @pytest.mark.parametrize(
        'replication_type,percent,expected',
        [
            ('full-load', 100, True),
            ('full-load-and-cdc', 50, True),
            ('full-load-and-cdc', 100, False),
            ('cdc', 0, False),
        ],
    )
    def test_full_load_mode(self, mock_dms_client, config_arn, replication_type, percent, expected):
        """Test detection of the bulk copy phase."""
        record = {
            'Status': 'running',
            'ReplicationType': replication_type,
            'ReplicationStats': {'FullLoadProgressPercent': percent, 'StartDate': 'x'},
        }
        replication = _replication(mock_dms_client, config_arn, record)
        assert replication.is_running
        assert replication.is_running_in_full_load_mode is expected

    def test_summary(self, mock_dms_client, config_arn, sample_replication):
        """Test the summary carries the classification."""
        summary = _replication(mock_dms_client, config_arn, sample_replication).summary()
        assert summary['replication_config_arn'] == config_arn
        assert summary['has_succeeded'] is True
        assert summary['has_failed'] is False
        assert summary['stopped_time'] == '2024-01-01T10:00:00+00:00'


class TestActions:
    """Test stop, wait and delete."""

    def test_stop_running(self, mock_dms_client, config_arn):
        """Test a running replication is stopped."""
        replication = _replication(mock_dms_client, config_arn, {'Status': 'running'})
        assert replication.stop() is True
        mock_dms_client.call_api.assert_called_once_with(
            'stop_replication', ReplicationConfigArn=config_arn
        )

    def test_stop_not_running(self, mock_dms_client, config_arn, sample_replication):
        """Test nothing is called when not running."""
        assert _replication(mock_dms_client, config_arn, sample_replication).stop() is False
        mock_dms_client.call_api.assert_not_called()

    def test_wait_to_stop(self, mock_dms_client, config_arn, make_replication_record):
        """Test polling until the replication has stopped."""
        mock_dms_client.call_api.side_effect = [
            {'Replications': [make_replication_record(Status='stopping')]},
            {'Replications': [make_replication_record(Status='stopped')]},
        ]
        sleep = Mock()
        replication = _replication(mock_dms_client, config_arn, {'Status': 'running'})

        assert replication.wait_to_stop(sleep=sleep) is True
        assert replication.status == 'stopped'
        assert sleep.call_count == 2

    def test_wait_to_stop_gives_up(self, mock_dms_client, config_arn):
        """Test the wait is bounded."""
        mock_dms_client.call_api.return_value = {'Replications': [{'Status': 'running'}]}
        sleep = Mock()
        replication = _replication(mock_dms_client, config_arn, {'Status': 'running'})

        stopped = replication.wait_to_stop(max_wait_minutes=1, poll_interval_seconds=10, sleep=sleep)
        assert stopped is False
        assert sleep.call_count == 6

    def test_delete_configuration(self, mock_dms_client, config_arn, sample_replication):
        """Test the configuration is deleted."""
        _replication(mock_dms_client, config_arn, sample_replication).delete_configuration()
        mock_dms_client.call_api.assert_called_once_with(
            'delete_replication_config', ReplicationConfigArn=config_arn
        )
