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

"""Entry points that create a replication configuration and start it."""

from ..config import ReplicationSchedulerConfig
from ..exceptions import PreconditionException
from ..models import (
    ReplicationScope,
    ReplicationType,
    StartReplicationInput,
    StartReplicationType,
    StartResult,
    TaskType,
)
from .aws_clients import DMSClient
from .delayed_execution import DelayedExecution
from .lookups import ResourceLookup
from .replication import Replication
from .replication_creator import ReplicationCreator
from .replication_starter import ReplicationStarter
from .time_utils import as_server_timestamp, utc_now
from datetime import datetime
from loguru import logger
from typing import Any, Callable, Dict, List, Optional, Union


def _scope(smoke_test: bool) -> ReplicationScope:
    return ReplicationScope.SMOKE_TEST if smoke_test else ReplicationScope.STANDARD


class ReplicationLauncher:
    """Composes creation and start of replications for operators and handlers."""

    def __init__(
        self,
        config: ReplicationSchedulerConfig,
        dms_client: DMSClient,
        delayed_execution: DelayedExecution,
        clock: Callable[[], datetime] = utc_now,
        resource_lookup: Optional[ResourceLookup] = None,
    ):
        """Initialize replication launcher.

        Args:
            config: Scheduler configuration
            dms_client: DMS client
            delayed_execution: Schedules follow-up handlers
            clock: Source of the current instant
            resource_lookup: Fills unset placement fields before a create
        """
        self.config = config
        self.client = dms_client
        self.delayed_execution = delayed_execution
        self.clock = clock
        self.resource_lookup = resource_lookup

    def _creator(self, scope: ReplicationScope) -> ReplicationCreator:
        if self.resource_lookup is not None:
            self.resource_lookup.resolve_placement(self.config)
        return ReplicationCreator(self.config, self.client, scope, self.clock)

    def start_replication(
        self,
        replication_type: ReplicationType,
        scope: ReplicationScope = ReplicationScope.STANDARD,
        cdc_start_position: Optional[str] = None,
        custom_duration_minutes: Optional[int] = None,
        start_replication_type: StartReplicationType = StartReplicationType.START_REPLICATION,
        dry_run: bool = False,
    ) -> StartResult:
        """Create a serverless replication configuration and start it."""
        replication_type = ReplicationType(replication_type)
        if replication_type == ReplicationType.CDC and not cdc_start_position:
            raise PreconditionException(
                'A CDC replication needs a start position',
                suggested_action='Provide cdc_start_position as a date or DMS position',
            )

        creator = self._creator(scope)
        config_arn = creator.create(TaskType.SERVERLESS, replication_type, dry_run)

        if not config_arn:
            logger.info(
                'DRYRUN: no configuration created, skipping start',
                replication_type=replication_type.value,
                cdc_start_position=cdc_start_position,
            )
            return StartResult(
                replication_config_arn='',
                replication_type=replication_type,
                start_replication_type=start_replication_type,
                cdc_start_position=cdc_start_position,
                dry_run=True,
            )

        starter = ReplicationStarter(
            self.config, self.client, self.delayed_execution, scope, self.clock
        )
        return starter.start(
            config_arn,
            cdc_start_position=cdc_start_position,
            custom_duration_minutes=custom_duration_minutes,
            start_replication_type=start_replication_type,
            dry_run=dry_run,
        )

    def start_full_load(
        self,
        replication_type: ReplicationType = ReplicationType.FULL_LOAD_AND_CDC,
        smoke_test: bool = False,
        custom_duration_minutes: Optional[int] = None,
        dry_run: bool = False,
    ) -> StartResult:
        """Start a full load, optionally followed by CDC."""
        replication_type = ReplicationType(replication_type)
        if replication_type == ReplicationType.CDC:
            raise PreconditionException(
                'A full load cannot use the cdc replication type',
                details={'valid_types': ['full-load', 'full-load-and-cdc']},
            )
        return self.start_replication(
            replication_type,
            _scope(smoke_test),
            custom_duration_minutes=custom_duration_minutes,
            dry_run=dry_run,
        )

    def start_cdc(
        self,
        cdc_start_position: Union[str, datetime, None],
        smoke_test: bool = False,
        custom_duration_minutes: Optional[int] = None,
        dry_run: bool = False,
    ) -> StartResult:
        """Start a CDC-only replication from a position or a point in time."""
        if isinstance(cdc_start_position, datetime):
            cdc_start_position = as_server_timestamp(cdc_start_position)
        return self.start_replication(
            ReplicationType.CDC,
            _scope(smoke_test),
            cdc_start_position=cdc_start_position,
            custom_duration_minutes=custom_duration_minutes,
            dry_run=dry_run,
        )

    def create_only(
        self,
        task_type: TaskType = TaskType.SERVERLESS,
        replication_type: ReplicationType = ReplicationType.FULL_LOAD_AND_CDC,
        smoke_test: bool = False,
        dry_run: bool = False,
    ) -> str:
        """Create a replication without starting it."""
        creator = self._creator(_scope(smoke_test))
        return creator.create(task_type, replication_type, dry_run)

    def cancel(self, dry_run: bool = False) -> List[str]:
        """Delete pending schedules, ending the replication chain."""
        names = self.delayed_execution.cancel_pending(self.config.prefix, dry_run)
        if not names:
            logger.info('No pending schedules, nothing to cancel', prefix=self.config.prefix)
        return names

    def describe(self, config_arn: str) -> Dict[str, Any]:
        """Classified state of the last run of a configuration."""
        replication = Replication.get_instance(
            self.client, config_arn, ignore_last_error=self.config.ignore_last_error
        )
        return replication.summary()

    def run_scheduled_start(self, start_input: StartReplicationInput) -> StartResult:
        """Start the replication a schedule asked for."""
        logger.info('Starting scheduled replication', lambda_input=start_input.to_payload())
        return self.start_replication(
            start_input.replication_type,
            _scope(start_input.is_smoke_test),
            cdc_start_position=start_input.cdc_start_position,
            custom_duration_minutes=start_input.custom_duration_minutes,
            start_replication_type=start_input.start_replication_type,
            dry_run=start_input.dry_run,
        )
