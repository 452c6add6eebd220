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

"""Exception hierarchy for the DMS replication scheduler.

Configuration and precondition problems are raised locally before any AWS call.
AWS SDK errors are translated into the service exceptions below and propagated.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class ReplicationSchedulerException(Exception):
    """Base exception for the replication scheduler."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        suggested_action: Optional[str] = None,
    ):
        """Initialize base exception.

        Args:
            message: Error message
            details: Additional error details
            suggested_action: Suggested action to resolve the error
        """
        self.message = message
        self.details = details or {}
        self.suggested_action = suggested_action
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to structured dictionary.

        Returns:
            Dictionary representation of the error
        """
        error_dict = {
            'error': True,
            'error_type': self.__class__.__name__,
            'message': self.message,
            'timestamp': self.timestamp.strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
        }

        if self.details:
            error_dict['details'] = dict(self.details)

        if self.suggested_action:
            error_dict['details'] = error_dict.get('details', {})
            error_dict['details']['suggested_action'] = self.suggested_action

        return error_dict


class ConfigurationException(ReplicationSchedulerException):
    """Missing or invalid environment parameters."""

    def __init__(
        self,
        message: str,
        missing_fields: Optional[List[str]] = None,
        invalid_fields: Optional[Dict[str, str]] = None,
    ):
        """Initialize configuration exception.

        Args:
            message: Error message
            missing_fields: Every required field that has no value
            invalid_fields: Field name to reason, for every field with a bad value
        """
        self.missing_fields = list(missing_fields or [])
        self.invalid_fields = dict(invalid_fields or {})
        details: Dict[str, Any] = {}
        if self.missing_fields:
            details['missing_fields'] = self.missing_fields
        if self.invalid_fields:
            details['invalid_fields'] = self.invalid_fields
        super().__init__(
            message,
            details=details,
            suggested_action='Set the listed environment variables and invoke again',
        )


class InvalidCronException(ConfigurationException):
    """Cron expression, cron field or timezone is not valid."""

    def __init__(self, message: str, expression: Optional[str] = None):
        """Initialize cron exception.

        Args:
            message: Error message
            expression: The offending expression, if any
        """
        invalid = {'cron': expression} if expression is not None else None
        super().__init__(message, invalid_fields=invalid)
        self.expression = expression


class PreconditionException(ReplicationSchedulerException):
    """A lifecycle invariant does not hold for the requested operation."""

    pass


class ResumePositionException(ReplicationSchedulerException):
    """No position could be determined to resume change data capture from."""

    def __init__(self, config_arn: Optional[str] = None):
        """Initialize resume position exception.

        Args:
            config_arn: ARN of the replication configuration being continued
        """
        super().__init__(
            'Cannot determine where to start the CDC replication from. '
            'No RecoveryCheckpoint, stop time or CdcStopPosition available.',
            details={'replication_config_arn': config_arn} if config_arn else None,
            suggested_action='Start a CDC replication manually with an explicit start position',
        )


class ReplicationServiceException(ReplicationSchedulerException):
    """An AWS API call failed."""

    pass


class ResourceNotFoundException(ReplicationServiceException):
    """Resource not found (404-equivalent)."""

    pass


class InvalidParameterException(ReplicationServiceException):
    """Invalid parameter rejected by the service."""

    pass


class AccessDeniedException(ReplicationServiceException):
    """Access denied (403-equivalent)."""

    pass


class ResourceInUseException(ReplicationServiceException):
    """Resource is currently in use or in the wrong state."""

    pass


# AWS Error Code Mapping
# Used by AWSClient to translate AWS SDK errors to custom exceptions
AWS_ERROR_MAP = {
    'ResourceNotFoundFault': ResourceNotFoundException,
    'ResourceNotFoundException': ResourceNotFoundException,
    'InvalidParameterValueException': InvalidParameterException,
    'InvalidParameterCombinationException': InvalidParameterException,
    'ValidationException': InvalidParameterException,
    'AccessDeniedFault': AccessDeniedException,
    'AccessDeniedException': AccessDeniedException,
    'UnauthorizedOperation': AccessDeniedException,
    'ResourceAlreadyExistsFault': ResourceInUseException,
    'InvalidResourceStateFault': ResourceInUseException,
    'ConflictException': ResourceInUseException,
}
