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

"""Creation of DMS replication configurations and provisioned tasks.

What gets replicated is decided by a ReplicationStrategy, selected by scope:
every table of the configured schemas, or a handful of smoke test tables.
"""

import json
from ..config import ReplicationSchedulerConfig
from ..exceptions import PreconditionException, ReplicationServiceException
from ..models import ReplicationScope, ReplicationType, TaskType
from .aws_clients import DMSClient
from .identifiers import replication_config_identifier, resource_identifier
from .replication_settings import get_replication_settings
from .table_mapping import TableMapping
from .time_utils import utc_now
from abc import ABC, abstractmethod
from datetime import datetime
from loguru import logger
from typing import Any, Callable, Dict, Optional


class ReplicationStrategy(ABC):
    """Replication settings and table mapping for one scope."""

    def __init__(self, config: ReplicationSchedulerConfig):
        """Initialize strategy.

        Args:
            config: Scheduler configuration
        """
        self.config = config

    @abstractmethod
    def replication_settings(self, serverless: bool = True) -> Dict[str, Any]:
        """Replication settings document for this scope."""

    @abstractmethod
    def table_mapping(self) -> TableMapping:
        """Table mapping rules selecting what this scope replicates."""

    def _schema_map(self) -> Dict[str, str]:
        # Only the first source schema is renamed to the target schema.
        if self.config.postgres_schema and self.config.source_db_schemas:
            return {self.config.source_db_schemas[0]: self.config.postgres_schema}
        return {}

    def _exclude_temp_tables(self, mapping: TableMapping, schema_names) -> TableMapping:
        for schema_name in schema_names:
            for pattern in self.config.excluded_table_patterns:
                mapping.exclude_table(schema_name, pattern)
        return mapping


class StandardReplicationStrategy(ReplicationStrategy):
    """Every table of every configured source schema."""

    def replication_settings(self, serverless: bool = True) -> Dict[str, Any]:
        return get_replication_settings(
            postgres_schema=self.config.postgres_schema,
            log_severity=self.config.replication_log_severity,
            serverless=serverless,
            settings_file=self.config.replication_settings_file,
            lob_max_size_kb=self.config.largest_source_lob_kb,
        )

    def table_mapping(self) -> TableMapping:
        schemas = self.config.source_db_schemas
        if not schemas:
            raise PreconditionException('No source schemas specified')

        mapping = TableMapping(self._schema_map()).include_schemas(schemas)
        return self._exclude_temp_tables(mapping, schemas).lower_case_target_table_names()


class SmokeTestReplicationStrategy(ReplicationStrategy):
    """Only the configured test tables."""

    def replication_settings(self, serverless: bool = True) -> Dict[str, Any]:
        return get_replication_settings(
            postgres_schema=self.config.postgres_schema,
            log_severity=self.config.replication_log_severity,
            serverless=serverless,
            settings_file=self.config.replication_settings_file,
        )

    def table_mapping(self) -> TableMapping:
        tables = self.config.source_test_tables
        mapping = TableMapping.include_test_tables(tables, self._schema_map())
        schemas = list(dict.fromkeys(t.schema_name for t in tables))
        return self._exclude_temp_tables(mapping, schemas).lower_case_target_table_names()


STRATEGIES = {
    ReplicationScope.STANDARD: StandardReplicationStrategy,
    ReplicationScope.SMOKE_TEST: SmokeTestReplicationStrategy,
}


def get_strategy(
    scope: ReplicationScope, config: ReplicationSchedulerConfig
) -> ReplicationStrategy:
    """Strategy for a replication scope."""
    return STRATEGIES[ReplicationScope(scope)](config)


class ReplicationCreator:
    """Creates DMS replications, serverless or on a provisioned instance."""

    def __init__(
        self,
        config: ReplicationSchedulerConfig,
        dms_client: DMSClient,
        scope: ReplicationScope = ReplicationScope.STANDARD,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize replication creator.

        Args:
            config: Scheduler configuration
            dms_client: DMS client
            scope: Which tables the replication covers
            clock: Source of the current instant, used in identifiers
        """
        self.config = config
        self.client = dms_client
        self.scope = ReplicationScope(scope)
        self.strategy = get_strategy(self.scope, config)
        self.clock = clock

    def create(
        self,
        task_type: TaskType = TaskType.SERVERLESS,
        replication_type: ReplicationType = ReplicationType.FULL_LOAD_AND_CDC,
        dry_run: bool = False,
    ) -> str:
        """Create a replication.

        Args:
            task_type: Serverless configuration or provisioned instance and task
            replication_type: DMS migration type
            dry_run: Log the requests and create nothing

        Returns:
            ARN of the configuration (serverless) or task (provisioned), '' on dry run

        Raises:
            ConfigurationException: Required configuration is missing
        """
        self.config.validate_for_create(smoke_test=self.scope == ReplicationScope.SMOKE_TEST)

        task_type = TaskType(task_type)
        replication_type = ReplicationType(replication_type)
        if task_type == TaskType.PROVISIONED:
            return self._create_provisioned(replication_type, dry_run)
        return self._create_serverless(replication_type, dry_run)

    def _create_serverless(self, replication_type: ReplicationType, dry_run: bool) -> str:
        now = self.clock()
        prefix = self.config.prefix
        request = {
            'ReplicationConfigIdentifier': replication_config_identifier(
                prefix, replication_type.value, now
            ),
            'ResourceIdentifier': resource_identifier(prefix, date=now),
            'ReplicationType': replication_type.value,
            'SourceEndpointArn': self.config.source_endpoint_arn,
            'TargetEndpointArn': self.config.target_endpoint_arn,
            'ReplicationSettings': json.dumps(self.strategy.replication_settings(serverless=True)),
            'TableMappings': self.strategy.table_mapping().to_json(),
            'ComputeConfig': {
                'ReplicationSubnetGroupId': self.config.replication_subnet_group_id,
                'MultiAZ': False,
                'MaxCapacityUnits': self.config.max_capacity_units,
                'MinCapacityUnits': self.config.min_capacity_units,
                'AvailabilityZone': self.config.replication_availability_zone,
                'VpcSecurityGroupIds': [self.config.vpc_security_group_id],
            },
        }

        logger.info(
            'Creating replication configuration', scope=self.scope.value, request=request
        )
        if dry_run:
            logger.info('DRYRUN: skipping create_replication_config')
            return ''

        response = self.client.call_api('create_replication_config', **request)
        arn = response.get('ReplicationConfig', {}).get('ReplicationConfigArn')
        if not arn:
            raise ReplicationServiceException('Failed to create the replication configuration')

        logger.info('Created replication configuration', config_arn=arn)
        return arn

    def _create_provisioned(self, replication_type: ReplicationType, dry_run: bool) -> str:
        now = self.clock()
        prefix = self.config.prefix
        instance_request = {
            'ReplicationInstanceIdentifier': f'{prefix}-instance',
            'ResourceIdentifier': resource_identifier(prefix, 'instance', now),
            'ReplicationInstanceClass': self.config.replication_instance_class,
            'AllocatedStorage': self.config.allocated_storage,
            'VpcSecurityGroupIds': [self.config.vpc_security_group_id],
            'AvailabilityZone': self.config.replication_availability_zone,
            'PubliclyAccessible': False,
            'ReplicationSubnetGroupIdentifier': self.config.replication_subnet_group_id,
            'MultiAZ': False,
        }
        task_request: Dict[str, Optional[str]] = {
            'ReplicationTaskIdentifier': f'{prefix}-task',
            'ResourceIdentifier': resource_identifier(prefix, 'task', now),
            'SourceEndpointArn': self.config.source_endpoint_arn,
            'TargetEndpointArn': self.config.target_endpoint_arn,
            'MigrationType': replication_type.value,
            'ReplicationInstanceArn': None,
            'TableMappings': self.strategy.table_mapping().to_json(),
            'ReplicationTaskSettings': json.dumps(
                self.strategy.replication_settings(serverless=False)
            ),
        }

        logger.info(
            'Creating replication instance and task',
            scope=self.scope.value,
            instance_request=instance_request,
            task_request=task_request,
        )
        if dry_run:
            logger.info('DRYRUN: skipping create_replication_instance and create_replication_task')
            return ''

        response = self.client.call_api('create_replication_instance', **instance_request)
        instance_arn = response.get('ReplicationInstance', {}).get('ReplicationInstanceArn')
        if not instance_arn:
            raise ReplicationServiceException('Failed to create the replication instance')

        task_request['ReplicationInstanceArn'] = instance_arn
        response = self.client.call_api('create_replication_task', **task_request)
        task_arn = response.get('ReplicationTask', {}).get('ReplicationTaskArn')
        if not task_arn:
            raise ReplicationServiceException('Failed to create the replication task')

        logger.info('Created replication task', instance_arn=instance_arn, task_arn=task_arn)
        return task_arn
