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

"""Payload models exchanged between schedules and the Lambda handlers.

Field aliases are the JSON keys found on the wire.
"""

from .replication_models import ReplicationType, StartReplicationType
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    def to_payload(self) -> Dict[str, Any]:
        """Serialize using wire field names."""
        return self.model_dump(by_alias=True, exclude_none=True, mode='json')


class ScheduledInvocation(_WireModel):
    """Event delivered to a Lambda function by a one-time schedule.

    The schedule name and group travel with the input so the invoked function
    can delete the schedule that triggered it.
    """

    lambda_input: Dict[str, Any] = Field(default_factory=dict, alias='lambdaInput')
    schedule_name: Optional[str] = Field(default=None, alias='scheduleName')
    group_name: Optional[str] = Field(default=None, alias='groupName')


class StartReplicationInput(_WireModel):
    """Input of the start replication handler."""

    replication_type: ReplicationType = Field(
        default=ReplicationType.FULL_LOAD_AND_CDC, alias='ReplicationType'
    )
    start_replication_type: StartReplicationType = Field(
        default=StartReplicationType.START_REPLICATION, alias='StartReplicationType'
    )
    cdc_start_position: Optional[str] = Field(default=None, alias='CdcStartPosition')
    custom_duration_minutes: Optional[int] = Field(
        default=None, ge=1, alias='customDurationMinutes'
    )
    is_smoke_test: bool = Field(default=False, alias='isSmokeTest')
    dry_run: bool = Field(default=False, alias='dryrun')


class StopReplicationInput(_WireModel):
    """Input of the stop replication handler."""

    replication_config_arn: str = Field(..., min_length=1, alias='ReplicationConfigArn')
    is_smoke_test: bool = Field(default=False, alias='isSmokeTest')
    restart_now: bool = Field(default=False, alias='restartNow')
    dry_run: bool = Field(default=False, alias='dryrun')
