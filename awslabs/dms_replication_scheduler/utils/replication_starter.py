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

"""Starting a DMS serverless replication and scheduling its cleanup."""

from ..config import ReplicationSchedulerConfig
from ..consts import DELETE_SCHEDULE_NAME, DELETION_SLACK_MINUTES, SMOKE_TEST_MAX_DURATION_MINUTES
from ..exceptions import PreconditionException
from ..models import (
    ReplicationScope,
    ReplicationType,
    StartReplicationType,
    StartResult,
    StopReplicationInput,
    TriggerHandle,
)
from .aws_clients import DMSClient
from .delayed_execution import DelayedExecution
from .lookups import lookup_replication_type
from .time_utils import as_server_timestamp, ensure_utc, utc_now
from datetime import datetime, timedelta
from loguru import logger
from typing import Any, Callable, Dict, Optional


class ReplicationStarter:
    """Starts a replication with a bounded run time."""

    def __init__(
        self,
        config: ReplicationSchedulerConfig,
        dms_client: DMSClient,
        delayed_execution: DelayedExecution,
        scope: ReplicationScope = ReplicationScope.STANDARD,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize replication starter.

        Args:
            config: Scheduler configuration
            dms_client: DMS client
            delayed_execution: Schedules the stop handler
            scope: Smoke test runs are capped in duration
            clock: Source of the current instant
        """
        self.config = config
        self.client = dms_client
        self.delayed_execution = delayed_execution
        self.scope = ReplicationScope(scope)
        self.clock = clock

    @property
    def is_smoke_test(self) -> bool:
        return self.scope == ReplicationScope.SMOKE_TEST

    def resolve_stop_time(
        self,
        replication_type: ReplicationType,
        cdc_stop_time: Optional[datetime] = None,
        custom_duration_minutes: Optional[int] = None,
    ) -> datetime:
        """When the replication must stop.

        A custom duration wins over a custom stop time, which wins over the
        configured duration for the replication type. Smoke tests cap the
        configured duration.
        """
        now = self.clock()
        if custom_duration_minutes and custom_duration_minutes > 0:
            logger.info('Using custom duration', minutes=custom_duration_minutes)
            return now + timedelta(minutes=custom_duration_minutes)

        if cdc_stop_time is not None:
            return ensure_utc(cdc_stop_time)

        minutes = self.config.duration_for(replication_type)
        if self.is_smoke_test and minutes > SMOKE_TEST_MAX_DURATION_MINUTES:
            logger.info(
                'Smoke test run, capping duration',
                configured_minutes=minutes,
                minutes=SMOKE_TEST_MAX_DURATION_MINUTES,
            )
            minutes = SMOKE_TEST_MAX_DURATION_MINUTES
        return now + timedelta(minutes=minutes)

    def start(
        self,
        config_arn: str,
        cdc_start_position: Optional[str] = None,
        cdc_stop_time: Optional[datetime] = None,
        custom_duration_minutes: Optional[int] = None,
        start_replication_type: StartReplicationType = StartReplicationType.START_REPLICATION,
        dry_run: bool = False,
    ) -> StartResult:
        """Start a replication and schedule the stop handler after it ends.

        Args:
            config_arn: ARN of the replication configuration
            cdc_start_position: Where CDC starts from, required for cdc
            cdc_stop_time: Explicit stop time
            custom_duration_minutes: Run time from now, overrides cdc_stop_time
            start_replication_type: DMS start type
            dry_run: Log the requests and change nothing

        Returns:
            What was started and when it stops

        Raises:
            ConfigurationException: Required configuration is missing
            PreconditionException: No start position for a cdc replication
        """
        self.config.validate_for_start()
        if not config_arn:
            raise PreconditionException('No replication configuration ARN to start')

        replication_type = lookup_replication_type(self.client, config_arn)

        if replication_type == ReplicationType.CDC and not cdc_start_position:
            raise PreconditionException(
                'No CdcStartPosition specified to start a CDC replication',
                details={'replication_config_arn': config_arn},
            )

        stop_time = self.resolve_stop_time(
            replication_type, cdc_stop_time, custom_duration_minutes
        )

        request: Dict[str, Any] = {
            'ReplicationConfigArn': config_arn,
            'StartReplicationType': StartReplicationType(start_replication_type).value,
        }
        cdc_stop_position = None
        if replication_type != ReplicationType.FULL_LOAD:
            cdc_stop_position = as_server_timestamp(stop_time)
            request['CdcStopPosition'] = cdc_stop_position
            if cdc_start_position:
                request['CdcStartPosition'] = cdc_start_position

        if dry_run:
            logger.info('DRYRUN: would start replication', request=request)
        else:
            logger.info('Starting replication', request=request)
            self.client.call_api('start_replication', **request)

        deletion_trigger = self.schedule_deletion(config_arn, stop_time, dry_run)

        return StartResult(
            replication_config_arn=config_arn,
            replication_type=replication_type,
            start_replication_type=start_replication_type,
            cdc_start_position=cdc_start_position,
            cdc_stop_position=cdc_stop_position,
            cdc_stop_time=stop_time,
            deletion_trigger=deletion_trigger,
            dry_run=dry_run,
        )

    def schedule_deletion(
        self, config_arn: str, stop_time: datetime, dry_run: bool = False
    ) -> Optional[TriggerHandle]:
        """Invoke the stop handler a few minutes after the replication should have stopped."""
        stop_input = StopReplicationInput(
            replication_config_arn=config_arn, is_smoke_test=self.is_smoke_test
        )
        return self.delayed_execution.schedule(
            target_arn=self.config.stop_replication_function_arn,
            payload=stop_input.to_payload(),
            fire_at=ensure_utc(stop_time) + timedelta(minutes=DELETION_SLACK_MINUTES),
            name=DELETE_SCHEDULE_NAME,
            dry_run=dry_run,
        )
