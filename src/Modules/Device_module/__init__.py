"""
Device Module Package
Exports the main classes of the device configuration sync module
"""

from .device_models import (
    TimeValue,
    AlarmSet,
    NextAlarm,
    DeviceConfig,
    LogEntry,
    InvalidTimeFormat,
    DuplicateAlarm,
)
from .device_api_client import DeviceAPIClient, create_api_client, APIResponse, SyncError, SyncErrorKind
from .device_sync_manager import ConfigSyncClient, SyncState, SaveInProgressError

__all__ = [
    'TimeValue',
    'AlarmSet',
    'NextAlarm',
    'DeviceConfig',
    'LogEntry',
    'InvalidTimeFormat',
    'DuplicateAlarm',
    'DeviceAPIClient',
    'create_api_client',
    'APIResponse',
    'SyncError',
    'SyncErrorKind',
    'ConfigSyncClient',
    'SyncState',
    'SaveInProgressError',
]
