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

"""Tests for log_retention module."""

import pytest
from awslabs.dms_replication_scheduler.exceptions import InvalidParameterException
from awslabs.dms_replication_scheduler.utils.log_retention import ReplicationLogRetention


GROUPS = [
    {'logGroupName': 'dms-serverless-replication-kuali-1', 'retentionInDays': 30},
    {'logGroupName': 'dms-serverless-replication-kuali-2'},
    {'logGroupName': 'dms-serverless-replication-kuali-3'},
]


class TestReplicationLogRetention:
    """Test applying retention to replication log groups."""

    def test_prefix(self, mock_logs_client):
        """Test the log group name prefix with and without a suffix."""
        assert (
            ReplicationLogRetention(mock_logs_client, 'kuali').log_group_name_prefix
            == 'dms-serverless-replication-kuali-'
        )
        assert (
            ReplicationLogRetention(mock_logs_client, 'kuali', 'abc').log_group_name_prefix
            == 'dms-serverless-replication-kuali-abc'
        )

    def test_sets_retention_on_groups_without_one(self, mock_logs_client):
        """Test only groups without retention are updated."""
        mock_logs_client.paginate.return_value = iter(GROUPS)

        names = ReplicationLogRetention(mock_logs_client, 'kuali').set_retention_days(14)

        assert names == [
            'dms-serverless-replication-kuali-2',
            'dms-serverless-replication-kuali-3',
        ]
        mock_logs_client.paginate.assert_called_once_with(
            'describe_log_groups',
            'logGroups',
            logGroupNamePrefix='dms-serverless-replication-kuali-',
        )
        mock_logs_client.call_api.assert_any_call(
            'put_retention_policy',
            logGroupName='dms-serverless-replication-kuali-2',
            retentionInDays=14,
        )
        assert mock_logs_client.call_api.call_count == 2

    def test_dry_run(self, mock_logs_client):
        """Test a dry run changes nothing."""
        mock_logs_client.paginate.return_value = iter(GROUPS)
        names = ReplicationLogRetention(mock_logs_client, 'kuali').set_retention_days(
            14, dry_run=True
        )
        assert len(names) == 2
        mock_logs_client.call_api.assert_not_called()

    def test_nothing_to_do(self, mock_logs_client):
        """Test no groups without retention."""
        mock_logs_client.paginate.return_value = iter(GROUPS[:1])
        assert ReplicationLogRetention(mock_logs_client, 'kuali').set_retention_days(14) == []
        mock_logs_client.call_api.assert_not_called()

    @pytest.mark.parametrize('days', [0, 2, 10, 10000])
    def test_invalid_days(self, mock_logs_client, days):
        """Test days CloudWatch does not accept."""
        with pytest.raises(InvalidParameterException):
            ReplicationLogRetention(mock_logs_client, 'kuali').set_retention_days(days)
        mock_logs_client.paginate.assert_not_called()
