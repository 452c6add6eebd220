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

"""DMS replication settings documents.

Defaults are tuned for an Oracle source. For the meaning of each setting see
https://docs.aws.amazon.com/dms/latest/userguide/CHAP_Tasks.CustomizingTasks.TaskSettings.html
"""

import copy
import json
from ..exceptions import ConfigurationException
from loguru import logger
from pathlib import Path
from typing import Any, Dict, Optional


LOG_COMPONENTS = (
    'TRANSFORMATION',
    'SOURCE_CAPTURE',
    'SOURCE_UNLOAD',
    'TARGET_LOAD',
    'TARGET_APPLY',
    'IO',
    'PERFORMANCE',
    'VALIDATOR_EXT',
)

SEVERITY_BY_VERBOSITY = {
    'warn': 'LOGGER_SEVERITY_WARNING',
    'info': 'LOGGER_SEVERITY_INFO',
    'debug': 'LOGGER_SEVERITY_DEBUG',
}

STANDARD_REPLICATION_SETTINGS: Dict[str, Any] = {
    'Logging': {
        'EnableLogging': True,
        'EnableLogContext': True,
        'LogComponents': [
            {'Id': component, 'Severity': 'LOGGER_SEVERITY_INFO'} for component in LOG_COMPONENTS
        ],
    },
    'ErrorBehavior': {
        'RecoverableErrorCount': 1000,
        'RecoverableErrorInterval': 5,
        'RecoverableErrorThrottling': True,
        'RecoverableErrorThrottlingMax': 1800,
        'FailOnNoTablesCaptured': True,
    },
    'ValidationSettings': {
        'EnableValidation': True,
        'ValidationMode': 'ROW_LEVEL',
        'ThreadCount': 5,
        'FailureMaxCount': 1000,
        'RecordFailureDelayInMinutes': 5,
    },
    'ControlTablesSettings': {
        'historyTimeslotInMinutes': 5,
        'historyTableEnabled': True,
        'SuspendedTablesTableEnabled': True,
        'StatusTableEnabled': True,
        'TaskRecoveryTableEnabled': True,
        'ControlSchema': '',
    },
    'FullLoadSettings': {
        # Tables processed in parallel
        'MaxFullLoadSubTasks': 8,
        # Parallelism within one table
        'ParallelLoadThreads': 2,
        'TransactionConsistencyTimeout': 600,
        'CommitRate': 10000,
        'CreatePkAfterFullLoad': False,
        'StopTaskCachedChangesApplied': False,
        'StopTaskCachedChangesNotApplied': False,
    },
    'TargetMetadata': {
        'SupportLobs': True,
        'FullLobMode': False,
        'LobChunkSize': 64,
        'InlineLobMaxSize': 0,
        'LimitedSizeLobMode': True,
        'LobMaxSize': 7000,
        'BatchApplyEnabled': True,
        'TaskRecoveryTableEnabled': True,
    },
    'CheckpointSettings': {
        # Transaction level checkpoints, Oracle needs the precision
        'CheckpointFrequency': 1,
        'CheckpointInterval': 0,
        'CheckpointMaxRetry': 3,
        'CheckpointValidation': True,
    },
}


def _load_settings_file(path: str) -> Dict[str, Any]:
    try:
        return json.loads(Path(path).read_text())
    except (OSError, ValueError) as e:
        raise ConfigurationException(
            f'Cannot read replication settings file {path}: {e}',
            invalid_fields={'REPLICATION_SETTINGS_FILE': path},
        ) from e


def get_replication_settings(
    postgres_schema: Optional[str] = None,
    log_severity: str = 'info',
    serverless: bool = True,
    settings_file: Optional[str] = None,
    lob_max_size_kb: int = 0,
) -> Dict[str, Any]:
    """Build the replication settings document.

    Args:
        postgres_schema: Target schema, lower cased into the control schema
        log_severity: One of warn, info or debug
        serverless: Drop settings DMS Serverless manages on its own
        settings_file: JSON document replacing the built-in defaults
        lob_max_size_kb: Limited LOB mode size, kept at the default when 0

    Returns:
        Settings dictionary ready for json.dumps
    """
    if settings_file:
        logger.info('Using custom replication settings', settings_file=settings_file)
        settings = _load_settings_file(settings_file)
    else:
        settings = copy.deepcopy(STANDARD_REPLICATION_SETTINGS)
        severity = SEVERITY_BY_VERBOSITY.get(log_severity, 'LOGGER_SEVERITY_INFO')
        for component in settings['Logging']['LogComponents']:
            if component['Severity'] == 'LOGGER_SEVERITY_INFO':
                component['Severity'] = severity

        if serverless:
            # Derived from the capacity units on serverless
            settings['FullLoadSettings'].pop('ParallelLoadThreads', None)

    if postgres_schema:
        settings.setdefault('ControlTablesSettings', {})['ControlSchema'] = postgres_schema.lower()

    if lob_max_size_kb > 0:
        settings.setdefault('TargetMetadata', {})['LobMaxSize'] = lob_max_size_kb

    return settings
