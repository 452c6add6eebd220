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

"""Enumerations and value models for DMS replications."""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ReplicationType(str, Enum):
    """DMS migration type of a replication configuration."""

    FULL_LOAD = 'full-load'
    CDC = 'cdc'
    FULL_LOAD_AND_CDC = 'full-load-and-cdc'


class StartReplicationType(str, Enum):
    """How a replication is started."""

    START_REPLICATION = 'start-replication'
    RESUME_PROCESSING = 'resume-processing'
    RELOAD_TARGET = 'reload-target'


class TaskType(str, Enum):
    """Where the replication compute lives."""

    SERVERLESS = 'serverless'
    PROVISIONED = 'provisioned'


class ReplicationScope(str, Enum):
    """Which tables a replication covers."""

    STANDARD = 'standard'
    SMOKE_TEST = 'smoke-test'


class ReplicationStatus(str, Enum):
    """Status values reported by describe_replications."""

    CREATED = 'created'
    CREATING = 'creating'
    STARTING = 'starting'
    RUNNING = 'running'
    STOPPING = 'stopping'
    STOPPED = 'stopped'
    DELETING = 'deleting'
    FAILED = 'failed'
    MODIFYING = 'modifying'
    READY = 'ready'
    MOVING = 'moving'
    FAILED_MOVE = 'failed-move'


class StopReason(str, Enum):
    """Stop reason codes reported by DMS.

    DMS reports these embedded in free text, so they are matched by containment.
    """

    NORMAL = 'NORMAL'
    RECOVERABLE_ERROR = 'RECOVERABLE_ERROR'
    FATAL_ERROR = 'FATAL_ERROR'
    FULL_LOAD_ONLY_FINISHED = 'FULL_LOAD_ONLY_FINISHED'
    STOPPED_AFTER_FULL_LOAD = 'STOPPED_AFTER_FULL_LOAD'
    STOPPED_AFTER_CACHED_EVENTS = 'STOPPED_AFTER_CACHED_EVENTS'
    EXPRESS_LICENSE_LIMITS_REACHED = 'EXPRESS_LICENSE_LIMITS_REACHED'
    STOPPED_AFTER_DDL_APPLY = 'STOPPED_AFTER_DDL_APPLY'
    STOPPED_DUE_TO_LOW_MEMORY = 'STOPPED_DUE_TO_LOW_MEMORY'
    STOPPED_DUE_TO_LOW_DISK = 'STOPPED_DUE_TO_LOW_DISK'
    STOPPED_AT_SERVER_TIME = 'STOPPED_AT_SERVER_TIME'
    STOPPED_AT_COMMIT_TIME = 'STOPPED_AT_COMMIT_TIME'
    RECONFIGURATION_RESTART = 'RECONFIGURATION_RESTART'
    RECYCLE_TASK = 'RECYCLE_TASK'


class DatabaseTable(BaseModel):
    """A source schema and some of its tables."""

    model_config = ConfigDict(populate_by_name=True)

    schema_name: str = Field(..., alias='schemaName', min_length=1)
    table_names: List[str] = Field(default_factory=list, alias='tableNames')


class TriggerHandle(BaseModel):
    """A one-time EventBridge schedule created for a delayed execution."""

    schedule_name: str = Field(description='Schedule name, unique within the group')
    group_name: str = Field(description='Schedule group name')
    schedule_expression: str = Field(description='Single-shot cron expression')
    fire_at: datetime = Field(description='Instant the schedule was requested to fire at')
    target_arn: str = Field(description='ARN of the Lambda function invoked')
    schedule_arn: Optional[str] = Field(default=None, description='ARN of the created schedule')


class StartResult(BaseModel):
    """Outcome of starting a replication."""

    replication_config_arn: str
    replication_type: Optional[ReplicationType] = None
    start_replication_type: StartReplicationType = StartReplicationType.START_REPLICATION
    cdc_start_position: Optional[str] = None
    cdc_stop_position: Optional[str] = None
    cdc_stop_time: Optional[datetime] = None
    deletion_trigger: Optional[TriggerHandle] = None
    dry_run: bool = False


class StopOutcome(str, Enum):
    """What the stop handler decided after inspecting the last run."""

    SCHEDULED_FULL_LOAD_AND_CDC = 'scheduled-full-load-and-cdc'
    SCHEDULED_CDC = 'scheduled-cdc'
    FAILED = 'failed'
    IN_FULL_LOAD = 'in-full-load'
    STILL_RUNNING = 'still-running'
    UNEXPECTED_STATE = 'unexpected-state'
