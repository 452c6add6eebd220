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

"""Constants for the DMS replication scheduler."""

DEFAULT_AWS_REGION = 'us-east-1'

# Schedules
NO_SCHEDULE = 'N/A'
SCHEDULE_NAME_MAX_LENGTH = 64
START_SCHEDULE_NAME = 'start-replication'
DELETE_SCHEDULE_NAME = 'delete-replication'

# DMS resource identifiers
RESOURCE_IDENTIFIER_MAX_LENGTH = 31

# Lifecycle timing
DELETION_SLACK_MINUTES = 5
RESTART_NOW_DELAY_SECONDS = 15
STOP_POLL_INTERVAL_SECONDS = 10
STOP_MAX_WAIT_MINUTES = 5

# A smoke test touches a handful of small tables; provisioning alone can take
# up to 30 minutes, so this leaves about 5 minutes of actual replication.
SMOKE_TEST_MAX_DURATION_MINUTES = 35

# Serverless compute defaults
DEFAULT_MIN_CAPACITY_UNITS = 2
DEFAULT_MAX_CAPACITY_UNITS = 8

# Provisioned compute defaults
DEFAULT_REPLICATION_INSTANCE_CLASS = 'dms.t3.medium'
DEFAULT_ALLOCATED_STORAGE_GB = 50

# CloudWatch log groups created by DMS serverless replications
REPLICATION_LOG_GROUP_BASE = 'dms-serverless-replication'
LOG_RETENTION_DAYS = (
    1,
    3,
    5,
    7,
    14,
    30,
    60,
    90,
    120,
    150,
    180,
    365,
    400,
    545,
    731,
    1096,
    1827,
    2192,
    2557,
    2922,
    3288,
    3653,
)
