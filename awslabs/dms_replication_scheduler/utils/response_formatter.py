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

"""Response Formatter.

Provides consistent response formatting across all MCP tools.
"""

from ..models import StartResult, TriggerHandle
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class ResponseFormatter:
    """Utility class for formatting tool responses consistently."""

    @staticmethod
    def format_trigger(trigger: Optional[TriggerHandle]) -> Optional[Dict[str, Any]]:
        """Format a delayed execution schedule for response.

        Args:
            trigger: Schedule handle or None when nothing was scheduled

        Returns:
            Formatted schedule dictionary or None
        """
        if trigger is None:
            return None
        return {
            'schedule_name': trigger.schedule_name,
            'group_name': trigger.group_name,
            'schedule_expression': trigger.schedule_expression,
            'fire_at': ResponseFormatter.format_timestamp(trigger.fire_at),
            'target_arn': trigger.target_arn,
            'schedule_arn': trigger.schedule_arn,
        }

    @staticmethod
    def format_start_result(result: StartResult) -> Dict[str, Any]:
        """Format the outcome of starting a replication."""
        return {
            'replication_config_arn': result.replication_config_arn,
            'replication_type': result.replication_type.value if result.replication_type else None,
            'start_replication_type': result.start_replication_type.value,
            'cdc_start_position': result.cdc_start_position,
            'cdc_stop_position': result.cdc_stop_position,
            'cdc_stop_time': ResponseFormatter.format_timestamp(result.cdc_stop_time),
            'deletion_schedule': ResponseFormatter.format_trigger(result.deletion_trigger),
            'dry_run': result.dry_run,
        }

    @staticmethod
    def format_success(data: Any, dry_run: bool = False) -> Dict[str, Any]:
        """Wrap tool output in the common success envelope."""
        response: Dict[str, Any] = {'success': True, 'data': data, 'error': None}
        if dry_run:
            response['dry_run'] = True
        return response

    @staticmethod
    def format_names(names: List[str], key: str) -> Dict[str, Any]:
        """Format a list of resource names with its count."""
        return {key: names, 'count': len(names)}

    @staticmethod
    def format_error(error: Exception) -> Dict[str, Any]:
        """Format exception for error response.

        Args:
            error: Exception to format

        Returns:
            Formatted error dictionary
        """
        from ..exceptions import ReplicationSchedulerException

        error_dict = {
            'success': False,
            'error': {
                'message': str(error),
                'type': error.__class__.__name__,
                'timestamp': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
            },
            'data': None,
        }

        # Add details for custom exceptions
        if isinstance(error, ReplicationSchedulerException):
            if error.details:
                error_dict['error']['details'] = error.details
            if error.suggested_action:
                error_dict['error']['suggested_action'] = error.suggested_action

        return error_dict

    @staticmethod
    def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
        """Format datetime to ISO 8601 string in UTC.

        Args:
            dt: Datetime object or None

        Returns:
            ISO 8601 formatted string or None
        """
        if dt is None:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
