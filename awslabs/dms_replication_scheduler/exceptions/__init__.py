"""
Custom exceptions for the DMS replication scheduler.

Provides a hierarchy of exceptions for proper error handling and reporting.
"""

from .replication_exceptions import (
    ReplicationSchedulerException,
    ConfigurationException,
    InvalidCronException,
    PreconditionException,
    ResumePositionException,
    ReplicationServiceException,
    ResourceNotFoundException,
    InvalidParameterException,
    AccessDeniedException,
    ResourceInUseException,
    AWS_ERROR_MAP,
)

__all__ = [
    'ReplicationSchedulerException',
    'ConfigurationException',
    'InvalidCronException',
    'PreconditionException',
    'ResumePositionException',
    'ReplicationServiceException',
    'ResourceNotFoundException',
    'InvalidParameterException',
    'AccessDeniedException',
    'ResourceInUseException',
    'AWS_ERROR_MAP',
]
