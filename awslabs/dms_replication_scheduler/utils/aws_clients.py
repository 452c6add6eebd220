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

"""boto3 client wrappers.

Provides centralized AWS client management with transport retry configuration,
error translation and logging for every service the scheduler talks to.
"""

import boto3
from ..config import ReplicationSchedulerConfig
from ..exceptions import AWS_ERROR_MAP, ReplicationServiceException
from botocore.exceptions import ClientError
from loguru import logger
from typing import Any, Dict, Iterator


class AWSClient:
    """Wrapper for a boto3 client with error translation and logging."""

    SERVICE_NAME = ''

    def __init__(self, config: ReplicationSchedulerConfig):
        """Initialize AWS client.

        Args:
            config: Scheduler configuration
        """
        self.config = config
        self._client = None

        logger.debug('Initializing AWS client', service=self.SERVICE_NAME, region=config.aws_region)

    def get_client(self) -> Any:
        """Get or create the boto3 client.

        Returns:
            Configured boto3 client
        """
        if self._client is None:
            from botocore.config import Config

            # Create calls are not idempotent, a single attempt each
            retry_config = Config(
                retries={'total_max_attempts': 1, 'mode': 'standard'},
                connect_timeout=self.config.default_timeout,
                read_timeout=self.config.default_timeout,
            )

            if self.config.aws_profile:
                session = boto3.Session(profile_name=self.config.aws_profile)
                self._client = session.client(
                    self.SERVICE_NAME, region_name=self.config.aws_region, config=retry_config
                )
            else:
                self._client = boto3.client(
                    self.SERVICE_NAME, region_name=self.config.aws_region, config=retry_config
                )

            logger.debug(
                'Created boto3 client',
                service=self.SERVICE_NAME,
                region=self.config.aws_region,
                timeout=self.config.default_timeout,
            )

        return self._client

    def call_api(self, operation: str, **kwargs) -> Dict[str, Any]:
        """Call an API operation with error handling and logging.

        Args:
            operation: boto3 operation name
            **kwargs: Operation parameters

        Returns:
            API response dictionary

        Raises:
            ReplicationServiceException: API call failed
        """
        logger.info('Calling AWS API', service=self.SERVICE_NAME, operation=operation, params=kwargs)

        try:
            response = getattr(self.get_client(), operation)(**kwargs)

            logger.debug(
                'AWS API call successful',
                service=self.SERVICE_NAME,
                operation=operation,
                response_metadata=response.get('ResponseMetadata', {}),
            )

            return response

        except ClientError as e:
            exception = self.translate_error(e)
            logger.error(
                'AWS API call failed',
                service=self.SERVICE_NAME,
                operation=operation,
                error=str(exception),
            )
            raise exception

    def paginate(self, operation: str, result_key: str, **kwargs) -> Iterator[Dict[str, Any]]:
        """Iterate over every item of a paginated operation.

        Args:
            operation: boto3 operation name
            result_key: Response key holding the page items
            **kwargs: Operation parameters

        Yields:
            Items across all pages
        """
        logger.info(
            'Paginating AWS API', service=self.SERVICE_NAME, operation=operation, params=kwargs
        )

        try:
            paginator = self.get_client().get_paginator(operation)
            for page in paginator.paginate(**kwargs):
                yield from page.get(result_key, [])
        except ClientError as e:
            exception = self.translate_error(e)
            logger.error(
                'AWS API pagination failed',
                service=self.SERVICE_NAME,
                operation=operation,
                error=str(exception),
            )
            raise exception

    def translate_error(self, error: ClientError) -> ReplicationServiceException:
        """Translate AWS SDK error to custom exception.

        Args:
            error: boto3 ClientError

        Returns:
            Custom ReplicationServiceException
        """
        error_code = error.response.get('Error', {}).get('Code', 'Unknown')
        error_message = error.response.get('Error', {}).get('Message', 'Unknown error')
        request_id = error.response.get('ResponseMetadata', {}).get('RequestId')

        exception_class = AWS_ERROR_MAP.get(error_code, ReplicationServiceException)

        return exception_class(
            message=f'{self.SERVICE_NAME} API Error: {error_message}',
            details={
                'error_code': error_code,
                'aws_request_id': request_id,
            },
        )


class DMSClient(AWSClient):
    """Database Migration Service client."""

    SERVICE_NAME = 'dms'


class SchedulerClient(AWSClient):
    """EventBridge Scheduler client."""

    SERVICE_NAME = 'scheduler'


class EC2Client(AWSClient):
    """EC2 client, used for network lookups only."""

    SERVICE_NAME = 'ec2'


class CloudWatchLogsClient(AWSClient):
    """CloudWatch Logs client."""

    SERVICE_NAME = 'logs'
