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

"""
Utility modules for the DMS replication scheduler.

Controllers that create, start, stop and reschedule DMS serverless replications.
"""

from .aws_clients import AWSClient, CloudWatchLogsClient, DMSClient, EC2Client, SchedulerClient
from .cron import Cron
from .delayed_execution import DelayedExecution, with_schedule_cleanup
from .log_retention import ReplicationLogRetention
from .lookups import ResourceLookup
from .replication import Replication
from .replication_creator import ReplicationCreator
from .replication_launcher import ReplicationLauncher
from .replication_starter import ReplicationStarter
from .replication_stopper import ReplicationStopper
from .response_formatter import ResponseFormatter
from .table_mapping import TableMapping

__all__ = [
    'AWSClient',
    'CloudWatchLogsClient',
    'Cron',
    'DMSClient',
    'DelayedExecution',
    'EC2Client',
    'ReplicationCreator',
    'ReplicationLauncher',
    'ReplicationLogRetention',
    'ReplicationStarter',
    'ReplicationStopper',
    'Replication',
    'ResourceLookup',
    'ResponseFormatter',
    'SchedulerClient',
    'TableMapping',
    'with_schedule_cleanup',
]
