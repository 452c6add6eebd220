"""
DMS Replication Scheduler.

Runs AWS DMS serverless replications on a schedule: each run is started with a
bounded duration, deleted once it stops, and followed by a CDC run that resumes
where it left off. Exposed as Lambda handlers and as an MCP server for operators.
"""

from .server import create_server
from .config import ReplicationSchedulerConfig

__version__ = '0.0.1'
__all__ = ['create_server', 'ReplicationSchedulerConfig', '__version__']
