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

"""Read-only lookups of resources provisioned outside the scheduler."""

from ..config import ReplicationSchedulerConfig
from ..exceptions import ResourceNotFoundException
from ..models import ReplicationType
from .aws_clients import DMSClient, EC2Client
from loguru import logger
from typing import Callable, List


def lookup_replication_type(dms_client: DMSClient, config_arn: str) -> ReplicationType:
    """Replication type a configuration was created with."""
    response = dms_client.call_api(
        'describe_replication_configs',
        Filters=[{'Name': 'replication-config-arn', 'Values': [config_arn]}],
    )
    configs = response.get('ReplicationConfigs', [])
    if not configs:
        raise ResourceNotFoundException(
            f'Replication configuration not found: {config_arn}',
            details={'replication_config_arn': config_arn},
        )
    return ReplicationType(configs[0]['ReplicationType'])


class ResourceLookup:
    """Resolves names of endpoints, security groups and VPCs to identifiers."""

    def __init__(self, dms_client: DMSClient, ec2_client: EC2Client):
        """Initialize resource lookup.

        Args:
            dms_client: DMS client
            ec2_client: EC2 client
        """
        self.dms = dms_client
        self.ec2 = ec2_client

    def endpoint_arn(self, endpoint_identifier: str) -> str:
        """ARN of a DMS endpoint, by its identifier."""
        response = self.dms.call_api(
            'describe_endpoints',
            Filters=[{'Name': 'endpoint-id', 'Values': [endpoint_identifier]}],
        )
        endpoints = response.get('Endpoints', [])
        if not endpoints:
            raise ResourceNotFoundException(
                f'Endpoint not found: {endpoint_identifier}',
                details={'endpoint_identifier': endpoint_identifier},
            )
        arn = endpoints[0]['EndpointArn']
        logger.debug('Resolved endpoint', endpoint_identifier=endpoint_identifier, arn=arn)
        return arn

    def security_group_id(self, group_name: str) -> str:
        """ID of a security group, by its name."""
        response = self.ec2.call_api(
            'describe_security_groups',
            Filters=[{'Name': 'group-name', 'Values': [group_name]}],
        )
        groups = response.get('SecurityGroups', [])
        if not groups:
            raise ResourceNotFoundException(
                f'Security group not found: {group_name}', details={'group_name': group_name}
            )
        return groups[0]['GroupId']

    def availability_zones(self, vpc_id: str) -> List[str]:
        """Availability zones that a VPC has subnets in, sorted."""
        response = self.ec2.call_api(
            'describe_subnets', Filters=[{'Name': 'vpc-id', 'Values': [vpc_id]}]
        )
        zones = sorted({subnet['AvailabilityZone'] for subnet in response.get('Subnets', [])})
        if not zones:
            raise ResourceNotFoundException(
                f'No subnets found for VPC: {vpc_id}', details={'vpc_id': vpc_id}
            )
        return zones

    def replication_type(self, config_arn: str) -> ReplicationType:
        """Replication type a configuration was created with."""
        return lookup_replication_type(self.dms, config_arn)

    def resolve_placement(self, config: ReplicationSchedulerConfig) -> List[str]:
        """Fill unset placement fields from the resources named after the prefix.

        Endpoints are looked up as ``{prefix}-source-endpoint`` and
        ``{prefix}-target-endpoint``, the security group as ``{prefix}-vpc-sg``
        and the availability zone as the first zone of ``source_db_vpc_id``.
        The subnet group defaults to ``{prefix}-subnet-group``. A resource that
        does not exist leaves its field unset for create validation to report.

        Args:
            config: Scheduler configuration, updated in place

        Returns:
            Names of the fields that were filled
        """
        prefix = config.prefix
        if not prefix:
            return []

        lookups = {
            'source_endpoint_arn': lambda: self.endpoint_arn(f'{prefix}-source-endpoint'),
            'target_endpoint_arn': lambda: self.endpoint_arn(f'{prefix}-target-endpoint'),
            'vpc_security_group_id': lambda: self.security_group_id(f'{prefix}-vpc-sg'),
            'replication_subnet_group_id': lambda: f'{prefix}-subnet-group',
        }
        if config.source_db_vpc_id:
            vpc_id = config.source_db_vpc_id
            lookups['replication_availability_zone'] = lambda: self.availability_zones(vpc_id)[0]

        filled = []
        for field, resolve in lookups.items():
            if getattr(config, field):
                continue
            value = self._resolve(field, resolve)
            if value:
                setattr(config, field, value)
                filled.append(field)

        if filled:
            logger.info('Resolved placement from resource names', prefix=prefix, fields=filled)
        return filled

    @staticmethod
    def _resolve(field: str, resolve: Callable[[], str]) -> str:
        try:
            return resolve()
        except ResourceNotFoundException as e:
            logger.warning('Cannot resolve placement field', field=field, error=str(e))
            return ''
