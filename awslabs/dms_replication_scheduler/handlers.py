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

"""Lambda handlers invoked by the one-time schedules.

Each handler builds its configuration from the environment, does its work and
then deletes the schedule that invoked it, whether the work succeeded or not.
Failures are logged and returned as an error result, never raised, so an
asynchronous invocation is not retried by Lambda.
"""

from .config import ReplicationSchedulerConfig, configure_logging
from .models import ScheduledInvocation, StartReplicationInput, StopReplicationInput
from .utils.aws_clients import DMSClient, SchedulerClient
from .utils.delayed_execution import DelayedExecution, with_schedule_cleanup
from .utils.replication_launcher import ReplicationLauncher
from .utils.replication_stopper import ReplicationStopper
from .utils.response_formatter import ResponseFormatter
from loguru import logger
from typing import Any, Dict, Optional


def _delayed_execution(config: Optional[ReplicationSchedulerConfig] = None) -> DelayedExecution:
    config = config or ReplicationSchedulerConfig()
    return DelayedExecution(config, SchedulerClient(config))


def _load_config() -> ReplicationSchedulerConfig:
    config = ReplicationSchedulerConfig()
    configure_logging(config)
    return config


@with_schedule_cleanup(_delayed_execution)
def start_replication_handler(
    event: Dict[str, Any], context: Any = None
) -> Optional[Dict[str, Any]]:
    """Create a replication configuration and start it.

    Args:
        event: Scheduled invocation wrapping a StartReplicationInput
        context: Lambda context, unused

    Returns:
        The started replication, an error result when it failed, or None when
        the scheduler is inactive
    """
    config = _load_config()
    logger.info('start_replication_handler called', event=event)

    if not config.active:
        logger.info('The scheduler is not active, exiting without action')
        return None

    try:
        invocation = ScheduledInvocation.model_validate(event)
        start_input = StartReplicationInput.model_validate(invocation.lambda_input)
        launcher = ReplicationLauncher(config, DMSClient(config), _delayed_execution(config))
        result = launcher.run_scheduled_start(start_input)
        return ResponseFormatter.format_start_result(result)
    except Exception as e:
        logger.opt(exception=e).error('Failed to start replication', event=event)
        return ResponseFormatter.format_error(e)


@with_schedule_cleanup(_delayed_execution)
def stop_replication_handler(
    event: Dict[str, Any], context: Any = None
) -> Optional[Dict[str, Any]]:
    """Evaluate the last run of a configuration and schedule the next one.

    Args:
        event: Scheduled invocation wrapping a StopReplicationInput
        context: Lambda context, unused

    Returns:
        The decision taken, an error result when it failed, or None when the
        scheduler is inactive
    """
    config = _load_config()
    logger.info('stop_replication_handler called', event=event)

    if not config.active:
        logger.info('The scheduler is not active, exiting without action')
        return None

    try:
        invocation = ScheduledInvocation.model_validate(event)
        stop_input = StopReplicationInput.model_validate(invocation.lambda_input)
        stopper = ReplicationStopper(config, DMSClient(config), _delayed_execution(config))
        outcome = stopper.process(stop_input)
        logger.info(
            'Finished evaluating replication',
            config_arn=stop_input.replication_config_arn,
            outcome=outcome.value,
        )
        return {
            'replication_config_arn': stop_input.replication_config_arn,
            'outcome': outcome.value,
        }
    except Exception as e:
        logger.opt(exception=e).error('Failed to evaluate replication', event=event)
        return ResponseFormatter.format_error(e)
