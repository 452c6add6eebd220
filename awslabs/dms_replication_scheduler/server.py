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

"""DMS Replication Scheduler MCP Server - operator tools.

The Lambda handlers run the schedule unattended. These tools let an operator
start the first run, start a CDC run by hand, cancel the schedule, inspect the
last run and tidy up its log groups.
"""

from .config import ReplicationSchedulerConfig, configure_logging
from .exceptions import ReplicationSchedulerException
from .models import ReplicationType, TaskType
from .utils.aws_clients import CloudWatchLogsClient, DMSClient, EC2Client, SchedulerClient
from .utils.delayed_execution import DelayedExecution
from .utils.log_retention import ReplicationLogRetention
from .utils.lookups import ResourceLookup
from .utils.replication_launcher import ReplicationLauncher
from .utils.response_formatter import ResponseFormatter
from fastmcp import FastMCP
from loguru import logger
from typing import Any, Dict, Optional


mcp = FastMCP(
    'awslabs.dms-replication-scheduler',
    instructions="""
# DMS Replication Scheduler MCP Server

Runs AWS DMS serverless replications on a recurring schedule. Every run is bounded
in time. When it stops, its configuration is deleted and a CDC-only run is scheduled
at the next occurrence of the configured cron expression, resuming where the last
run stopped.

## Tools

- `start_full_load_replication` - Create and start a full load, optionally followed by CDC
- `start_cdc_replication` - Create and start a CDC-only replication from a position or time
- `create_replication_configuration` - Create a replication without starting it
- `cancel_replication_schedules` - Delete every pending schedule, ending the chain of runs
- `describe_replication_state` - Classified state of the last run of a configuration
- `set_replication_log_retention` - Apply a retention policy to replication log groups

## Notes

- Every mutating tool accepts `dry_run`, which logs the requests and changes nothing.
- CDC start positions are DMS positions, `server_time:YYYY-MM-DDTHH:MM:SS` or
  `commit_time:YYYY-MM-DDTHH:MM:SS`.
- Configuration comes from environment variables such as PREFIX, SOURCE_ENDPOINT_ARN,
  TARGET_ENDPOINT_ARN, SOURCE_DB_SCHEMAS and REPLICATION_SCHEDULE_CRON_EXPRESSION.
- Unset endpoints, security group, subnet group and availability zone are looked up
  from resources named after PREFIX (`{prefix}-source-endpoint`, `{prefix}-vpc-sg`, ...).
""",
)

config: Optional[ReplicationSchedulerConfig] = None
dms_client: Optional[DMSClient] = None
logs_client: Optional[CloudWatchLogsClient] = None
launcher: Optional[ReplicationLauncher] = None


def create_server(server_config: Optional[ReplicationSchedulerConfig] = None) -> FastMCP:
    """Create and configure the replication scheduler MCP server.

    Args:
        server_config: Optional configuration object. If None, loads from environment.

    Returns:
        Configured FastMCP server instance
    """
    global config, dms_client, logs_client, launcher

    config = server_config or ReplicationSchedulerConfig()
    configure_logging(config)

    logger.info(
        'Initializing DMS Replication Scheduler MCP Server',
        region=config.aws_region,
        prefix=config.prefix,
    )

    dms_client = DMSClient(config)
    logs_client = CloudWatchLogsClient(config)
    delayed_execution = DelayedExecution(config, SchedulerClient(config))
    launcher = ReplicationLauncher(
        config,
        dms_client,
        delayed_execution,
        resource_lookup=ResourceLookup(dms_client, EC2Client(config)),
    )

    logger.info('DMS Replication Scheduler MCP Server initialized successfully')
    return mcp


# ============================================================================
# REPLICATION TOOLS
# ============================================================================


@mcp.tool()
def start_full_load_replication(
    replication_type: str = ReplicationType.FULL_LOAD_AND_CDC.value,
    smoke_test: bool = False,
    custom_duration_minutes: Optional[int] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Create a serverless replication configuration and start a full load.

    The stop handler is scheduled to run a few minutes after the replication
    should have stopped. From there on the schedule keeps itself going.

    Args:
        replication_type: 'full-load-and-cdc' (default) or 'full-load'
        smoke_test: Replicate only the configured test tables, for a short time
        custom_duration_minutes: Run time from now, instead of the configured duration
        dry_run: Log the requests and change nothing

    Returns:
        Dictionary containing the configuration ARN, stop position and the
        schedule created for the stop handler
    """
    logger.info(
        'start_full_load_replication called',
        replication_type=replication_type,
        smoke_test=smoke_test,
        dry_run=dry_run,
    )

    try:
        result = launcher.start_full_load(
            ReplicationType(replication_type),
            smoke_test=smoke_test,
            custom_duration_minutes=custom_duration_minutes,
            dry_run=dry_run,
        )
        return ResponseFormatter.format_success(
            ResponseFormatter.format_start_result(result), dry_run
        )
    except ReplicationSchedulerException as e:
        logger.error('Failed to start full load replication', error=str(e))
        return ResponseFormatter.format_error(e)
    except Exception as e:
        logger.error('Unexpected error in start_full_load_replication', error=str(e))
        return ResponseFormatter.format_error(e)


@mcp.tool()
def start_cdc_replication(
    cdc_start_position: str,
    smoke_test: bool = False,
    custom_duration_minutes: Optional[int] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Create a serverless replication configuration and start CDC from a position.

    Args:
        cdc_start_position: DMS start position, e.g. 'server_time:2024-01-01T10:00:00'
        smoke_test: Replicate only the configured test tables, for a short time
        custom_duration_minutes: Run time from now, instead of the configured duration
        dry_run: Log the requests and change nothing

    Returns:
        Dictionary containing the configuration ARN, stop position and the
        schedule created for the stop handler
    """
    logger.info(
        'start_cdc_replication called',
        cdc_start_position=cdc_start_position,
        smoke_test=smoke_test,
        dry_run=dry_run,
    )

    try:
        result = launcher.start_cdc(
            cdc_start_position,
            smoke_test=smoke_test,
            custom_duration_minutes=custom_duration_minutes,
            dry_run=dry_run,
        )
        return ResponseFormatter.format_success(
            ResponseFormatter.format_start_result(result), dry_run
        )
    except ReplicationSchedulerException as e:
        logger.error('Failed to start CDC replication', error=str(e))
        return ResponseFormatter.format_error(e)
    except Exception as e:
        logger.error('Unexpected error in start_cdc_replication', error=str(e))
        return ResponseFormatter.format_error(e)


@mcp.tool()
def create_replication_configuration(
    task_type: str = TaskType.SERVERLESS.value,
    replication_type: str = ReplicationType.FULL_LOAD_AND_CDC.value,
    smoke_test: bool = False,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Create a replication without starting it.

    Args:
        task_type: 'serverless' for a replication configuration, 'provisioned'
            for a replication instance and task
        replication_type: 'full-load', 'cdc' or 'full-load-and-cdc'
        smoke_test: Replicate only the configured test tables
        dry_run: Log the requests and change nothing

    Returns:
        Dictionary containing the ARN of the created configuration or task
    """
    logger.info(
        'create_replication_configuration called',
        task_type=task_type,
        replication_type=replication_type,
        dry_run=dry_run,
    )

    try:
        arn = launcher.create_only(
            TaskType(task_type),
            ReplicationType(replication_type),
            smoke_test=smoke_test,
            dry_run=dry_run,
        )
        return ResponseFormatter.format_success(
            {'arn': arn or None, 'task_type': task_type, 'replication_type': replication_type},
            dry_run,
        )
    except ReplicationSchedulerException as e:
        logger.error('Failed to create replication configuration', error=str(e))
        return ResponseFormatter.format_error(e)
    except Exception as e:
        logger.error('Unexpected error in create_replication_configuration', error=str(e))
        return ResponseFormatter.format_error(e)


# ============================================================================
# SCHEDULE TOOLS
# ============================================================================


@mcp.tool()
def cancel_replication_schedules(dry_run: bool = False) -> Dict[str, Any]:
    """Delete every pending schedule, so no further replication is started or deleted.

    A replication that is running keeps running until its stop position.

    Args:
        dry_run: List the schedules without deleting them

    Returns:
        Dictionary containing the names of the schedules found and their count
    """
    logger.info('cancel_replication_schedules called', dry_run=dry_run)

    try:
        names = launcher.cancel(dry_run=dry_run)
        return ResponseFormatter.format_success(
            ResponseFormatter.format_names(names, 'schedules'), dry_run
        )
    except ReplicationSchedulerException as e:
        logger.error('Failed to cancel replication schedules', error=str(e))
        return ResponseFormatter.format_error(e)
    except Exception as e:
        logger.error('Unexpected error in cancel_replication_schedules', error=str(e))
        return ResponseFormatter.format_error(e)


@mcp.tool()
def describe_replication_state(replication_config_arn: str) -> Dict[str, Any]:
    """Describe the last run of a replication configuration.

    Args:
        replication_config_arn: ARN of the replication configuration

    Returns:
        Dictionary containing the status, stop reason and the classification
        used to decide what runs next
    """
    logger.info('describe_replication_state called', config_arn=replication_config_arn)

    try:
        return ResponseFormatter.format_success(launcher.describe(replication_config_arn))
    except ReplicationSchedulerException as e:
        logger.error('Failed to describe replication state', error=str(e))
        return ResponseFormatter.format_error(e)
    except Exception as e:
        logger.error('Unexpected error in describe_replication_state', error=str(e))
        return ResponseFormatter.format_error(e)


# ============================================================================
# LOG TOOLS
# ============================================================================


@mcp.tool()
def set_replication_log_retention(
    days: int, suffix: Optional[str] = None, dry_run: bool = False
) -> Dict[str, Any]:
    """Apply a retention policy to replication log groups that have none.

    Args:
        days: Retention in days, a value CloudWatch Logs accepts (1, 3, 5, 7, 14, 30, ...)
        suffix: Restrict to the log groups whose name continues with this suffix
        dry_run: List the log groups without changing them

    Returns:
        Dictionary containing the names of the log groups updated and their count
    """
    logger.info('set_replication_log_retention called', days=days, suffix=suffix)

    try:
        retention = ReplicationLogRetention(logs_client, config.prefix or '', suffix)
        names = retention.set_retention_days(days, dry_run=dry_run)
        return ResponseFormatter.format_success(
            ResponseFormatter.format_names(names, 'log_groups'), dry_run
        )
    except ReplicationSchedulerException as e:
        logger.error('Failed to set replication log retention', error=str(e))
        return ResponseFormatter.format_error(e)
    except Exception as e:
        logger.error('Unexpected error in set_replication_log_retention', error=str(e))
        return ResponseFormatter.format_error(e)


def main() -> None:
    """Entry point for CLI execution."""
    try:
        # Initialize server with default configuration
        server = create_server()

        logger.info('Starting DMS Replication Scheduler MCP Server')
        server.run()

    except Exception as e:
        logger.error('Failed to start server', error=str(e))
        raise


if __name__ == '__main__':
    main()
