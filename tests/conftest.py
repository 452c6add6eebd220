"""Pytest configuration and fixtures for DMS replication scheduler tests."""

import pytest
from awslabs.dms_replication_scheduler.config import ReplicationSchedulerConfig
from awslabs.dms_replication_scheduler.models import DatabaseTable
from awslabs.dms_replication_scheduler.utils.aws_clients import (
    CloudWatchLogsClient,
    DMSClient,
    SchedulerClient,
)
from awslabs.dms_replication_scheduler.utils.delayed_execution import DelayedExecution
from datetime import datetime, timezone
from unittest.mock import Mock


CONFIG_ARN = 'arn:aws:dms:us-east-1:123456789012:replication-config:ABCDEFGHIJ'
START_FUNCTION_ARN = 'arn:aws:lambda:us-east-1:123456789012:function:kuali-start-replication'
STOP_FUNCTION_ARN = 'arn:aws:lambda:us-east-1:123456789012:function:kuali-stop-replication'
NOW = datetime(2024, 1, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed current instant used by injected clocks."""
    return NOW


@pytest.fixture
def clock():
    """Clock returning the fixed current instant."""
    return lambda: NOW


@pytest.fixture
def mock_config():
    """Provide a complete test configuration.

    Returns:
        ReplicationSchedulerConfig with every field a controller needs
    """
    return ReplicationSchedulerConfig(
        aws_region='us-east-1',
        account='123456789012',
        prefix='kuali',
        source_endpoint_arn='arn:aws:dms:us-east-1:123456789012:endpoint:SOURCE',
        target_endpoint_arn='arn:aws:dms:us-east-1:123456789012:endpoint:TARGET',
        replication_availability_zone='us-east-1a',
        replication_subnet_group_id='kuali-subnet-group',
        vpc_security_group_id='sg-0123456789abcdef0',
        source_db_schemas=['KCOEUS', 'KCRMPROC'],
        source_test_tables=[
            DatabaseTable(schema_name='KCOEUS', table_names=['AWARD', 'PROPOSAL']),
        ],
        postgres_schema='kcoeus',
        start_replication_function_arn=START_FUNCTION_ARN,
        stop_replication_function_arn=STOP_FUNCTION_ARN,
        replication_schedule_cron_expression='0 0 2 * * *',
        log_level='DEBUG',
    )


@pytest.fixture
def mock_dms_client(mock_config):
    """Provide a mocked DMS client.

    Returns:
        Mocked DMSClient instance
    """
    client = Mock(spec=DMSClient)
    client.config = mock_config
    return client


@pytest.fixture
def mock_scheduler_client(mock_config):
    """Provide a mocked EventBridge Scheduler client."""
    client = Mock(spec=SchedulerClient)
    client.config = mock_config
    client.call_api.return_value = {'ScheduleArn': 'arn:aws:scheduler:us-east-1:123:schedule/x'}
    return client


@pytest.fixture
def mock_logs_client(mock_config):
    """Provide a mocked CloudWatch Logs client."""
    client = Mock(spec=CloudWatchLogsClient)
    client.config = mock_config
    return client


@pytest.fixture
def mock_delayed_execution():
    """Provide a mocked delayed execution that schedules nothing."""
    delayed_execution = Mock(spec=DelayedExecution)
    delayed_execution.schedule.return_value = None
    delayed_execution.cancel_pending.return_value = []
    return delayed_execution


@pytest.fixture
def delayed_execution(mock_config, mock_scheduler_client, clock):
    """Provide a real delayed execution backed by the mocked scheduler client."""
    return DelayedExecution(mock_config, mock_scheduler_client, clock)


def _replication_record(**overrides):
    """Build a describe_replications record for a stopped full load and CDC run."""
    record = {
        'ReplicationConfigArn': CONFIG_ARN,
        'ReplicationType': 'full-load-and-cdc',
        'Status': 'stopped',
        'StopReason': 'Stop Reason STOPPED_AT_SERVER_TIME',
        'ReplicationStats': {
            'FullLoadProgressPercent': 100,
            'StartDate': datetime(2024, 1, 1, 7, 0, 0, tzinfo=timezone.utc),
            'StopDate': datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc),
        },
    }
    record.update(overrides)
    return record


@pytest.fixture
def make_replication_record():
    """Provide a factory of describe_replications records."""
    return _replication_record


@pytest.fixture
def sample_replication():
    """Provide a sample describe_replications record."""
    return _replication_record()


@pytest.fixture
def config_arn():
    """ARN of the replication configuration under test."""
    return CONFIG_ARN
