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

"""Deciding what follows a replication run.

Invoked a few minutes after a run should have stopped. A stopped serverless
replication stays provisioned, and billed, until its configuration is deleted,
so a successful run is deleted here and a CDC-only run is scheduled to pick up
where it left off.
"""

import time
from ..config import ReplicationSchedulerConfig
from ..consts import RESTART_NOW_DELAY_SECONDS, START_SCHEDULE_NAME
from ..exceptions import ResumePositionException
from ..models import (
    ReplicationType,
    StartReplicationInput,
    StartReplicationType,
    StopOutcome,
    StopReplicationInput,
    TriggerHandle,
)
from .aws_clients import DMSClient
from .cron import Cron
from .delayed_execution import DelayedExecution
from .replication import Replication
from .time_utils import as_server_timestamp, parse_position_timestamp, utc_now
from datetime import datetime, timedelta
from loguru import logger
from typing import Callable, Optional


def resolve_resume_position(replication: Replication) -> str:
    """Position a CDC-only run resumes from.

    Recovery checkpoint, then the time the last run stopped, then the stop
    position the last run was given.

    Raises:
        ResumePositionException: None of them is available
    """
    if replication.recovery_checkpoint:
        logger.info(
            'Resuming from the recovery checkpoint', position=replication.recovery_checkpoint
        )
        return replication.recovery_checkpoint

    stopped_time = replication.stopped_time
    if stopped_time is not None:
        position = as_server_timestamp(stopped_time)
        logger.info('Resuming from the last stop time', position=position)
        return position

    if replication.cdc_stop_position:
        stop_instant = parse_position_timestamp(replication.cdc_stop_position)
        if stop_instant is not None:
            position = as_server_timestamp(stop_instant)
            logger.info(
                'Resuming from the last CDC stop position',
                cdc_stop_position=replication.cdc_stop_position,
                position=position,
            )
            return position

    raise ResumePositionException(replication.arn)


class ReplicationStopper:
    """Inspects a finished run, cleans it up and schedules the next one."""

    def __init__(
        self,
        config: ReplicationSchedulerConfig,
        dms_client: DMSClient,
        delayed_execution: DelayedExecution,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize replication stopper.

        Args:
            config: Scheduler configuration
            dms_client: DMS client
            delayed_execution: Schedules the start handler
            clock: Source of the current instant
            sleep: Used while waiting for a replication to stop
        """
        self.config = config
        self.client = dms_client
        self.delayed_execution = delayed_execution
        self.clock = clock
        self.sleep = sleep

    def process(self, stop_input: StopReplicationInput) -> StopOutcome:
        """Classify the last run of a configuration and act on it.

        Args:
            stop_input: Configuration ARN and run options

        Returns:
            The branch taken
        """
        self.config.validate_for_stop()
        arn = stop_input.replication_config_arn
        dry_run = stop_input.dry_run

        replication = Replication.get_instance(
            self.client, arn, ignore_last_error=self.config.ignore_last_error
        )
        logger.info('Evaluating last replication', **replication.summary())

        if replication.has_never_run:
            logger.info('Replication has never run, scheduling a full load', config_arn=arn)
            self.schedule_full_load_and_cdc(stop_input)
            return StopOutcome.SCHEDULED_FULL_LOAD_AND_CDC

        if replication.has_failed and not replication.ignore_last_error:
            logger.error(
                'Last replication failed, not scheduling a new one',
                config_arn=arn,
                failure_message=replication.failure_message,
            )
            return StopOutcome.FAILED

        if replication.has_failed:
            logger.warning(
                'Last replication failed, ignoring and scheduling a new one',
                config_arn=arn,
                failure_message=replication.failure_message,
                replication_type=replication.replication_type,
            )
            if replication.replication_type != ReplicationType.FULL_LOAD_AND_CDC:
                self.schedule_full_load_and_cdc(stop_input)
                return StopOutcome.SCHEDULED_FULL_LOAD_AND_CDC
            self.schedule_cdc_only(stop_input, replication)
            return StopOutcome.SCHEDULED_CDC

        if replication.is_running_in_full_load_mode:
            logger.info(
                'Replication still in full load, nothing to do',
                config_arn=arn,
                full_load_progress_percent=replication.full_load_progress_percent,
            )
            return StopOutcome.IN_FULL_LOAD

        if replication.is_running:
            logger.warning('Replication should have stopped by now, stopping it', config_arn=arn)
            if dry_run:
                logger.info('DRYRUN: would stop replication', config_arn=arn)
                return StopOutcome.STILL_RUNNING
            replication.stop()
            if not replication.wait_to_stop(sleep=self.sleep):
                return StopOutcome.STILL_RUNNING

        if not replication.has_succeeded:
            logger.error(
                'Last replication is not in a succeeded state, not scheduling a new one',
                config_arn=arn,
                status=replication.status,
                failure_message=replication.failure_message,
            )
            return StopOutcome.UNEXPECTED_STATE

        logger.info('Last replication succeeded, scheduling a CDC replication', config_arn=arn)
        if dry_run:
            logger.info('DRYRUN: would delete replication configuration', config_arn=arn)
        else:
            replication.delete_configuration()
        self.schedule_cdc_only(stop_input, replication)
        return StopOutcome.SCHEDULED_CDC

    def next_start_time(self, restart_now: bool = False) -> datetime:
        """Next cron occurrence, or a few seconds from now on restart."""
        now = self.clock()
        if restart_now:
            logger.info(
                'Restarting now instead of at the next scheduled time',
                delay_seconds=RESTART_NOW_DELAY_SECONDS,
            )
            return now + timedelta(seconds=RESTART_NOW_DELAY_SECONDS)
        cron = Cron(
            self.config.replication_schedule_cron_expression,
            self.config.replication_schedule_cron_timezone,
        )
        return cron.next_occurrence(now)

    def schedule_full_load_and_cdc(
        self, stop_input: StopReplicationInput
    ) -> Optional[TriggerHandle]:
        """Schedule a fresh full load and CDC replication."""
        start_input = StartReplicationInput(
            replication_type=ReplicationType.FULL_LOAD_AND_CDC,
            start_replication_type=StartReplicationType.START_REPLICATION,
            is_smoke_test=stop_input.is_smoke_test,
        )
        return self._schedule_start(start_input, stop_input)

    def schedule_cdc_only(
        self, stop_input: StopReplicationInput, replication: Replication
    ) -> Optional[TriggerHandle]:
        """Schedule a CDC replication resuming where the last run stopped."""
        start_input = StartReplicationInput(
            replication_type=ReplicationType.CDC,
            start_replication_type=StartReplicationType.START_REPLICATION,
            cdc_start_position=resolve_resume_position(replication),
            is_smoke_test=stop_input.is_smoke_test,
        )
        return self._schedule_start(start_input, stop_input)

    def _schedule_start(
        self, start_input: StartReplicationInput, stop_input: StopReplicationInput
    ) -> Optional[TriggerHandle]:
        fire_at = self.next_start_time(stop_input.restart_now)
        logger.info(
            'Scheduling replication start',
            fire_at=fire_at.isoformat(),
            lambda_input=start_input.to_payload(),
        )
        return self.delayed_execution.schedule(
            target_arn=self.config.start_replication_function_arn,
            payload=start_input.to_payload(),
            fire_at=fire_at,
            name=START_SCHEDULE_NAME,
            dry_run=stop_input.dry_run,
        )
