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

"""Delayed Lambda execution through one-time EventBridge schedules.

A schedule carries its own name and group in the Lambda input, so the invoked
function can delete it once it has fired.
"""

import functools
import json
from ..config import ReplicationSchedulerConfig
from ..consts import NO_SCHEDULE
from ..exceptions import (
    InvalidParameterException,
    ReplicationSchedulerException,
    ReplicationServiceException,
    ResourceNotFoundException,
)
from ..models import ScheduledInvocation, TriggerHandle
from .aws_clients import SchedulerClient
from .cron import single_shot_expression
from .identifiers import schedule_name, timestamp_suffix
from .time_utils import ensure_utc, utc_now
from datetime import datetime
from loguru import logger
from typing import Any, Callable, Dict, List, Optional


class DelayedExecution:
    """Creates and deletes one-time schedules that invoke Lambda functions."""

    def __init__(
        self,
        config: ReplicationSchedulerConfig,
        scheduler_client: SchedulerClient,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize delayed execution.

        Args:
            config: Scheduler configuration
            scheduler_client: EventBridge Scheduler client
            clock: Source of the current instant
        """
        self.config = config
        self.client = scheduler_client
        self.clock = clock

    @property
    def group_name(self) -> str:
        """Schedule group every schedule is created in."""
        return self.config.schedule_group_name

    def schedule(
        self,
        target_arn: str,
        payload: Dict[str, Any],
        fire_at: datetime,
        name: str,
        description: Optional[str] = None,
        dry_run: bool = False,
    ) -> Optional[TriggerHandle]:
        """Invoke a Lambda function once, at a future instant.

        Args:
            target_arn: ARN of the Lambda function to invoke
            payload: Lambda input, wrapped with the schedule name and group
            fire_at: Instant to fire at
            name: Logical schedule name
            description: Schedule description
            dry_run: Log the request instead of creating the schedule

        Returns:
            Handle of the schedule, or None if fire_at is not in the future
        """
        now = self.clock()
        fire_at = ensure_utc(fire_at)
        description = description or f'{self.config.prefix}-{name}'

        if fire_at <= now:
            logger.warning(
                'Not scheduled, the requested time has already passed',
                description=description,
                fire_at=fire_at.isoformat(),
            )
            return None

        full_name = schedule_name(self.config.prefix or '', name, timestamp_suffix(now))
        expression = single_shot_expression(fire_at, now)
        invocation = ScheduledInvocation(
            lambda_input=payload, schedule_name=full_name, group_name=self.group_name
        )
        request = {
            'Name': full_name,
            'GroupName': self.group_name,
            'ScheduleExpression': expression,
            'State': 'ENABLED',
            'Description': description,
            'Target': {
                'Arn': target_arn,
                'RoleArn': self.config.resolved_scheduler_role_arn,
                'Input': json.dumps(invocation.to_payload()),
            },
            'FlexibleTimeWindow': {'Mode': 'OFF'},
        }
        handle = TriggerHandle(
            schedule_name=full_name,
            group_name=self.group_name,
            schedule_expression=expression,
            fire_at=fire_at,
            target_arn=target_arn,
        )

        if dry_run:
            logger.info('DRYRUN: would create schedule', request=request)
            return handle

        response = self.client.call_api('create_schedule', **request)
        handle.schedule_arn = response.get('ScheduleArn')

        logger.info(
            'Created schedule',
            schedule_name=full_name,
            schedule_arn=handle.schedule_arn,
            schedule_expression=expression,
            target_arn=target_arn,
            lambda_input=payload,
        )
        return handle

    def cleanup(self, name: Optional[str], group_name: Optional[str] = None) -> bool:
        """Delete a schedule, never raising.

        Args:
            name: Schedule name
            group_name: Schedule group, the configured group when omitted

        Returns:
            True if the schedule was deleted
        """
        group_name = group_name or self.group_name

        if not name:
            logger.info('Cannot delete schedule, missing schedule name', group_name=group_name)
            return False

        if name == NO_SCHEDULE:
            logger.info('Skipping deletion of placeholder schedule', schedule_name=name)
            return False

        logger.info('Deleting schedule', schedule_name=name, group_name=group_name)
        try:
            self.client.call_api('delete_schedule', Name=name, GroupName=group_name)
            return True
        except ResourceNotFoundException:
            logger.info(
                'Schedule not found, nothing to clean up', schedule_name=name, group_name=group_name
            )
        except InvalidParameterException as e:
            logger.warning(
                'Schedule name rejected, cancelling cleanup', schedule_name=name, error=str(e)
            )
        except ReplicationServiceException as e:
            logger.error(
                'Failed to delete schedule', schedule_name=name, group_name=group_name, error=str(e)
            )
        except Exception as e:
            logger.opt(exception=e).error(
                'Unexpected error deleting schedule', schedule_name=name, group_name=group_name
            )
        return False

    def cancel_pending(self, name_prefix: Optional[str] = None, dry_run: bool = False) -> List[str]:
        """Delete every enabled schedule in the group whose name has the prefix.

        Returns:
            Names of the schedules found
        """
        name_prefix = name_prefix or self.config.prefix
        params: Dict[str, Any] = {'GroupName': self.group_name, 'State': 'ENABLED'}
        if name_prefix:
            params['NamePrefix'] = name_prefix

        names = [s['Name'] for s in self.client.paginate('list_schedules', 'Schedules', **params)]
        logger.info('Found pending schedules', count=len(names), names=names)

        for name in names:
            if dry_run:
                logger.info('DRYRUN: would delete schedule', schedule_name=name)
            else:
                self.cleanup(name, self.group_name)
        return names


def with_schedule_cleanup(get_delayed_execution: Callable[[], DelayedExecution]):
    """Delete the schedule that invoked a handler once the handler returns or raises.

    Args:
        get_delayed_execution: Builds the DelayedExecution used for the deletion
    """

    def decorator(handler):
        @functools.wraps(handler)
        def wrapper(event, context=None):
            try:
                return handler(event, context)
            finally:
                # Raw keys, lambdaInput may not validate
                fields = event if isinstance(event, dict) else {}
                name = fields.get('scheduleName')
                group_name = fields.get('groupName')
                try:
                    delayed_execution = get_delayed_execution()
                except (ReplicationSchedulerException, ValueError) as e:
                    logger.error('Cannot clean up schedule', schedule_name=name, error=str(e))
                else:
                    delayed_execution.cleanup(name, group_name)

        return wrapper

    return decorator
