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

"""Retention policies for DMS serverless replication log groups.

DMS creates one log group per serverless replication and never expires it,
so they pile up unless a retention policy is applied.
"""

from ..consts import LOG_RETENTION_DAYS, REPLICATION_LOG_GROUP_BASE
from ..exceptions import InvalidParameterException
from .aws_clients import CloudWatchLogsClient
from loguru import logger
from typing import Any, Dict, List, Optional


class ReplicationLogRetention:
    """Applies a retention policy to replication log groups that have none."""

    def __init__(
        self, logs_client: CloudWatchLogsClient, prefix: str, suffix: Optional[str] = None
    ):
        """Initialize log retention.

        Args:
            logs_client: CloudWatch Logs client
            prefix: Resource name prefix of the replications
            suffix: Restrict to the log group of one replication
        """
        self.client = logs_client
        self.log_group_name_prefix = f'{REPLICATION_LOG_GROUP_BASE}-{prefix}-{suffix or ""}'

    def log_groups_without_retention(self) -> List[Dict[str, Any]]:
        """Matching log groups that keep their events forever."""
        groups = [
            group
            for group in self.client.paginate(
                'describe_log_groups', 'logGroups', logGroupNamePrefix=self.log_group_name_prefix
            )
            if not group.get('retentionInDays')
        ]
        logger.debug(
            'Found log groups without retention',
            prefix=self.log_group_name_prefix,
            count=len(groups),
        )
        return groups

    def set_retention_days(self, days: int, dry_run: bool = False) -> List[str]:
        """Apply a retention policy.

        Args:
            days: Retention in days, one of the values CloudWatch accepts
            dry_run: Log instead of applying

        Returns:
            Names of the log groups updated, or that would be

        Raises:
            InvalidParameterException: days is not an accepted value
        """
        if days not in LOG_RETENTION_DAYS:
            raise InvalidParameterException(
                f'Invalid number of days for log retention: {days}',
                details={'accepted_values': list(LOG_RETENTION_DAYS)},
            )

        names = [group['logGroupName'] for group in self.log_groups_without_retention()]
        if not names:
            logger.warning(
                'No log groups without a retention policy', prefix=self.log_group_name_prefix
            )
            return names

        for name in names:
            if dry_run:
                logger.info('DRYRUN: would set log retention', log_group=name, days=days)
                continue
            self.client.call_api('put_retention_policy', logGroupName=name, retentionInDays=days)
            logger.info('Set log retention', log_group=name, days=days)
        return names
