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

"""State of the most recent DMS serverless replication for a configuration.

The stop handler branches on the predicates below, never on the raw status.
"""

import json
import time
from ..consts import STOP_MAX_WAIT_MINUTES, STOP_POLL_INTERVAL_SECONDS
from ..models import ReplicationStatus, ReplicationType, StopReason
from .aws_clients import DMSClient
from .time_utils import ensure_utc
from datetime import datetime
from loguru import logger
from typing import Any, Callable, Dict, Optional, Tuple, Union


BUSY_STATUSES = frozenset(
    status.value
    for status in (
        ReplicationStatus.STARTING,
        ReplicationStatus.RUNNING,
        ReplicationStatus.CREATING,
        ReplicationStatus.STOPPING,
        ReplicationStatus.DELETING,
        ReplicationStatus.MODIFYING,
        ReplicationStatus.MOVING,
    )
)

# A stop request passes through stopping before the final status is known.
STOP_PENDING_STATUSES = frozenset(
    (ReplicationStatus.RUNNING.value, ReplicationStatus.STOPPING.value)
)

# Restart and recycle codes may be benign platform restarts, but are treated
# as failures until proven otherwise.
FAILURE_STOP_REASONS: Tuple[StopReason, ...] = (
    StopReason.FATAL_ERROR,
    StopReason.RECOVERABLE_ERROR,
    StopReason.STOPPED_DUE_TO_LOW_MEMORY,
    StopReason.STOPPED_DUE_TO_LOW_DISK,
    StopReason.EXPRESS_LICENSE_LIMITS_REACHED,
    StopReason.RECONFIGURATION_RESTART,
    StopReason.RECYCLE_TASK,
)

SUCCESS_STOP_REASONS: Dict[ReplicationType, Tuple[StopReason, ...]] = {
    ReplicationType.FULL_LOAD: (
        StopReason.FULL_LOAD_ONLY_FINISHED,
        StopReason.NORMAL,
    ),
    ReplicationType.FULL_LOAD_AND_CDC: (
        StopReason.FULL_LOAD_ONLY_FINISHED,
        StopReason.STOPPED_AFTER_FULL_LOAD,
        StopReason.STOPPED_AFTER_CACHED_EVENTS,
        StopReason.STOPPED_AT_SERVER_TIME,
        StopReason.STOPPED_AT_COMMIT_TIME,
        StopReason.NORMAL,
    ),
    ReplicationType.CDC: (
        StopReason.STOPPED_AFTER_CACHED_EVENTS,
        StopReason.STOPPED_AT_SERVER_TIME,
        StopReason.STOPPED_AT_COMMIT_TIME,
        StopReason.NORMAL,
    ),
}


def _as_datetime(value: Union[datetime, str, None]) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value.replace('Z', '+00:00')))


class Replication:
    """The last replication run of a configuration, with derived predicates."""

    def __init__(
        self,
        dms_client: DMSClient,
        config_arn: str,
        record: Optional[Dict[str, Any]] = None,
        ignore_last_error: bool = False,
    ):
        """Initialize from a describe_replications record.

        Args:
            dms_client: DMS client
            config_arn: ARN of the replication configuration
            record: Replication record, None when the configuration never ran
            ignore_last_error: Keep the schedule going after a failure
        """
        self.client = dms_client
        self.config_arn = config_arn
        self.record: Dict[str, Any] = record or {}
        self.ignore_last_error = ignore_last_error

    @classmethod
    def get_instance(
        cls, dms_client: DMSClient, config_arn: str, ignore_last_error: bool = False
    ) -> 'Replication':
        """Look up the most recent replication of a configuration."""
        response = dms_client.call_api(
            'describe_replications',
            Filters=[{'Name': 'replication-config-arn', 'Values': [config_arn]}],
        )
        replications = response.get('Replications', [])
        if not replications:
            logger.info('No replications found', config_arn=config_arn)
            return cls(dms_client, config_arn, None, ignore_last_error)
        return cls(dms_client, config_arn, replications[0], ignore_last_error)

    def refresh(self) -> None:
        """Fetch the current state again."""
        self.record = Replication.get_instance(self.client, self.config_arn).record

    @property
    def status(self) -> Optional[str]:
        return self.record.get('Status')

    @property
    def stop_reason(self) -> str:
        return self.record.get('StopReason') or ''

    @property
    def replication_type(self) -> Optional[ReplicationType]:
        value = self.record.get('ReplicationType')
        return ReplicationType(value) if value else None

    @property
    def arn(self) -> str:
        return self.record.get('ReplicationConfigArn') or self.config_arn

    @property
    def stats(self) -> Dict[str, Any]:
        return self.record.get('ReplicationStats') or {}

    @property
    def full_load_progress_percent(self) -> int:
        return self.stats.get('FullLoadProgressPercent') or 0

    @property
    def recovery_checkpoint(self) -> Optional[str]:
        return self.record.get('RecoveryCheckpoint') or None

    @property
    def cdc_stop_position(self) -> Optional[str]:
        return self.record.get('CdcStopPosition') or None

    @property
    def failure_message(self) -> str:
        return json.dumps(
            {
                'StopReason': self.record.get('StopReason') or 'unknown',
                'FailureMessages': self.record.get('FailureMessages') or [],
            }
        )

    @property
    def stopped_time(self) -> Optional[datetime]:
        """Earlier of the last stop time and the stats stop date."""
        candidates = [
            d
            for d in (
                _as_datetime(self.record.get('ReplicationLastStopTime')),
                _as_datetime(self.stats.get('StopDate')),
            )
            if d is not None
        ]
        return min(candidates) if candidates else None

    def _stopped_for(self, reasons: Tuple[StopReason, ...]) -> bool:
        return any(reason.value in self.stop_reason for reason in reasons)

    @property
    def is_busy(self) -> bool:
        """Starting, running or changing state. Nothing should be done meanwhile."""
        return self.status in BUSY_STATUSES

    @property
    def has_failed(self) -> bool:
        if self.status == ReplicationStatus.FAILED:
            return True
        if self.is_busy:
            return False
        return self._stopped_for(FAILURE_STOP_REASONS)

    @property
    def has_succeeded(self) -> bool:
        """Stopped the way the replication type normally stops."""
        if self.has_failed or self.is_busy:
            return False
        if self.status != ReplicationStatus.STOPPED:
            return False
        reasons = SUCCESS_STOP_REASONS.get(self.replication_type, ())
        return self._stopped_for(reasons)

    @property
    def has_never_run(self) -> bool:
        if self.stats.get('StartDate') or self.stats.get('StopDate') or self.stop_reason:
            return False
        if self.status != ReplicationStatus.CREATED:
            logger.warning(
                'Replication has no evidence of ever having run',
                config_arn=self.arn,
                status=self.status,
            )
        return True

    @property
    def is_running(self) -> bool:
        return self.status == ReplicationStatus.RUNNING

    @property
    def is_running_in_full_load_mode(self) -> bool:
        """Running and still in the bulk copy phase."""
        if not self.is_running:
            return False
        if self.replication_type == ReplicationType.FULL_LOAD:
            return True
        return (
            self.replication_type == ReplicationType.FULL_LOAD_AND_CDC
            and self.full_load_progress_percent < 100
        )

    def stop(self) -> bool:
        """Stop the replication if it is running.

        Returns:
            True if a stop was requested
        """
        if not self.is_running:
            logger.info('Replication is not running, no need to stop it', config_arn=self.arn)
            return False
        logger.info('Stopping replication', config_arn=self.arn)
        self.client.call_api('stop_replication', ReplicationConfigArn=self.arn)
        return True

    def wait_to_stop(
        self,
        max_wait_minutes: int = STOP_MAX_WAIT_MINUTES,
        poll_interval_seconds: int = STOP_POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """Poll until the replication is no longer running or stopping.

        Returns:
            True if it stopped within the wait
        """
        max_wait_seconds = max_wait_minutes * 60
        waited = 0
        while self.status in STOP_PENDING_STATUSES and waited < max_wait_seconds:
            logger.info(
                'Waiting for the replication to stop',
                config_arn=self.arn,
                remaining_seconds=max_wait_seconds - waited,
            )
            sleep(poll_interval_seconds)
            waited += poll_interval_seconds
            self.refresh()

        if self.status in STOP_PENDING_STATUSES:
            logger.warning(
                'Replication still running after waiting',
                config_arn=self.arn,
                waited_seconds=waited,
            )
            return False

        logger.info('Replication has stopped', config_arn=self.arn, status=self.status)
        return True

    def delete_configuration(self) -> None:
        """Delete the configuration.

        This is the only way to release a stopped serverless replication that is
        still provisioned and billed.
        """
        logger.info('Deleting replication configuration', config_arn=self.arn)
        self.client.call_api('delete_replication_config', ReplicationConfigArn=self.arn)

    def summary(self) -> Dict[str, Any]:
        """Classified state, for logs and operator tools."""
        stopped_time = self.stopped_time
        return {
            'replication_config_arn': self.arn,
            'status': self.status,
            'replication_type': self.replication_type.value if self.replication_type else None,
            'stop_reason': self.record.get('StopReason'),
            'full_load_progress_percent': self.full_load_progress_percent,
            'stopped_time': stopped_time.isoformat() if stopped_time else None,
            'recovery_checkpoint': self.recovery_checkpoint,
            'is_busy': self.is_busy,
            'has_failed': self.has_failed,
            'has_succeeded': self.has_succeeded,
            'has_never_run': self.has_never_run,
            'is_running_in_full_load_mode': self.is_running_in_full_load_mode,
        }
