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

"""Configuration management for the DMS replication scheduler.

Uses Pydantic for type-safe configuration with environment variable support.
The settings object is built once per invocation and handed to every controller.
"""

import sys
from .consts import (
    DEFAULT_ALLOCATED_STORAGE_GB,
    DEFAULT_AWS_REGION,
    DEFAULT_MAX_CAPACITY_UNITS,
    DEFAULT_MIN_CAPACITY_UNITS,
    DEFAULT_REPLICATION_INSTANCE_CLASS,
)
from .exceptions import ConfigurationException
from .models import DatabaseTable, ReplicationType
from loguru import logger
from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Literal, Optional


class ReplicationSchedulerConfig(BaseSettings):
    """Environment parameters for the replication lifecycle controllers."""

    model_config = SettingsConfigDict(
        env_prefix='', case_sensitive=False, validate_assignment=True, extra='ignore'
    )

    # AWS Configuration
    aws_region: str = Field(default=DEFAULT_AWS_REGION, description='AWS region')
    aws_profile: Optional[str] = Field(default=None, description='AWS credentials profile name')
    account: Optional[str] = Field(default=None, description='AWS account ID')
    default_timeout: int = Field(
        default=60, ge=5, le=900, description='Connect/read timeout for AWS API calls (seconds)'
    )

    # Lifecycle
    active: bool = Field(default=True, description='Handlers exit without action when false')
    prefix: Optional[str] = Field(default=None, description='Prefix for every resource name')
    ignore_last_error: bool = Field(
        default=False, description='Keep the schedule going after a failed replication'
    )

    # Placement
    source_endpoint_arn: Optional[str] = Field(default=None)
    target_endpoint_arn: Optional[str] = Field(default=None)
    replication_availability_zone: Optional[str] = Field(default=None)
    replication_subnet_group_id: Optional[str] = Field(default=None)
    vpc_security_group_id: Optional[str] = Field(default=None)
    source_db_vpc_id: Optional[str] = Field(
        default=None, description='VPC of the source database, for the availability zone lookup'
    )
    min_capacity_units: int = Field(default=DEFAULT_MIN_CAPACITY_UNITS, ge=1, le=384)
    max_capacity_units: int = Field(default=DEFAULT_MAX_CAPACITY_UNITS, ge=1, le=384)
    replication_instance_class: str = Field(default=DEFAULT_REPLICATION_INSTANCE_CLASS)
    allocated_storage: int = Field(default=DEFAULT_ALLOCATED_STORAGE_GB, ge=5, le=6144)

    # Table mapping
    source_db_schemas: List[str] = Field(default_factory=list)
    source_test_tables: List[DatabaseTable] = Field(default_factory=list)
    postgres_schema: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('postgres_db_schema', 'postgres_schema'),
        description='Target schema the first source schema is renamed to',
    )
    excluded_table_patterns: List[str] = Field(
        default_factory=lambda: ['BU_TEMP_%'],
        description='Table name patterns excluded from every source schema',
    )
    largest_source_lob_kb: int = Field(default=0, ge=0)

    # Replication settings
    replication_log_severity: Literal['warn', 'info', 'debug'] = Field(default='info')
    replication_settings_file: Optional[str] = Field(
        default=None, description='JSON file replacing the built-in replication settings'
    )

    # Scheduling
    start_replication_function_arn: Optional[str] = Field(default=None)
    stop_replication_function_arn: Optional[str] = Field(default=None)
    scheduler_role_arn: Optional[str] = Field(default=None)
    replication_schedule_cron_expression: Optional[str] = Field(default=None)
    replication_schedule_cron_timezone: Optional[str] = Field(default=None)

    # Durations
    replication_duration_for_full_load_minutes: int = Field(default=180, ge=1)
    replication_duration_for_cdc_minutes: int = Field(default=45, ge=1)

    # Logging Configuration
    log_level: Literal['TRACE', 'DEBUG', 'INFO', 'WARNING', 'ERROR'] = Field(default='INFO')
    enable_structured_logging: bool = Field(
        default=False, description='Add a JSON serialized log sink'
    )

    @field_validator('aws_region')
    @classmethod
    def validate_region(cls, v: str) -> str:
        """Validate AWS region format."""
        parts = v.split('-')
        if len(parts) < 3 or not parts[-1].isdigit():
            raise ValueError(f'Invalid AWS region: {v}')
        return v

    @model_validator(mode='after')
    def validate_capacity(self) -> 'ReplicationSchedulerConfig':
        """Validate serverless capacity bounds."""
        if self.min_capacity_units > self.max_capacity_units:
            raise ValueError(
                f'min_capacity_units ({self.min_capacity_units}) exceeds '
                f'max_capacity_units ({self.max_capacity_units})'
            )
        return self

    @property
    def schedule_group_name(self) -> str:
        """EventBridge schedule group holding every delayed execution."""
        return f'{self.prefix}-schedules'

    @property
    def resolved_scheduler_role_arn(self) -> Optional[str]:
        """Role assumed by EventBridge Scheduler to invoke the handlers."""
        if self.scheduler_role_arn:
            return self.scheduler_role_arn
        if self.account and self.prefix:
            return f'arn:aws:iam::{self.account}:role/{self.prefix}-scheduler-role'
        return None

    def duration_for(self, replication_type: ReplicationType) -> int:
        """Configured run duration in minutes for a replication type."""
        if replication_type == ReplicationType.CDC:
            return self.replication_duration_for_cdc_minutes
        return self.replication_duration_for_full_load_minutes

    def validate_for_create(self, smoke_test: bool = False) -> None:
        """Check everything needed to create a replication configuration.

        Raises:
            ConfigurationException: Listing every missing field
        """
        required: Dict[str, object] = {
            'PREFIX': self.prefix,
            'SOURCE_ENDPOINT_ARN': self.source_endpoint_arn,
            'TARGET_ENDPOINT_ARN': self.target_endpoint_arn,
            'REPLICATION_AVAILABILITY_ZONE': self.replication_availability_zone,
            'REPLICATION_SUBNET_GROUP_ID': self.replication_subnet_group_id,
            'VPC_SECURITY_GROUP_ID': self.vpc_security_group_id,
            'SOURCE_DB_SCHEMAS': self.source_db_schemas,
        }
        if smoke_test:
            required['SOURCE_TEST_TABLES'] = self.source_test_tables
        self._raise_if_missing('create a replication', required)

    def validate_for_start(self) -> None:
        """Check everything needed to start a replication and schedule its stop."""
        self._raise_if_missing(
            'start a replication',
            {
                'PREFIX': self.prefix,
                'STOP_REPLICATION_FUNCTION_ARN': self.stop_replication_function_arn,
                'SCHEDULER_ROLE_ARN or ACCOUNT': self.resolved_scheduler_role_arn,
            },
        )

    def validate_for_stop(self) -> None:
        """Check everything needed to evaluate a finished run and schedule the next one."""
        self._raise_if_missing(
            'schedule the next replication',
            {
                'PREFIX': self.prefix,
                'START_REPLICATION_FUNCTION_ARN': self.start_replication_function_arn,
                'REPLICATION_SCHEDULE_CRON_EXPRESSION': self.replication_schedule_cron_expression,
                'SCHEDULER_ROLE_ARN or ACCOUNT': self.resolved_scheduler_role_arn,
            },
            check_cron=True,
        )

    def _raise_if_missing(
        self, purpose: str, required: Dict[str, object], check_cron: bool = False
    ) -> None:
        missing: List[str] = [name for name, value in required.items() if not value]
        invalid: Dict[str, str] = {}

        if check_cron and self.replication_schedule_cron_expression:
            from .utils.cron import Cron

            try:
                Cron(
                    self.replication_schedule_cron_expression,
                    self.replication_schedule_cron_timezone,
                )
            except ConfigurationException as e:
                invalid['REPLICATION_SCHEDULE_CRON_EXPRESSION'] = e.message

        if missing or invalid:
            logger.error(
                'Invalid environment parameters', purpose=purpose, missing=missing, invalid=invalid
            )
            problems = []
            if missing:
                problems.append(f'missing {", ".join(missing)}')
            if invalid:
                problems.append(f'invalid {", ".join(invalid)}')
            raise ConfigurationException(
                f'Cannot {purpose}: {"; ".join(problems)}',
                missing_fields=missing,
                invalid_fields=invalid,
            )


def configure_logging(config: ReplicationSchedulerConfig) -> None:
    """Route loguru output to stderr at the configured level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=config.log_level,
        format='{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message} | {extra}',
    )

    if config.enable_structured_logging:
        logger.add(sys.stderr, level=config.log_level, serialize=True)
