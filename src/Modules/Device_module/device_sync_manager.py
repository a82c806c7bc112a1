"""
Sync Manager - keeps the local device configuration in step with the server.

This module handles:
- Loading the authoritative configuration (with a last-confirmed snapshot)
- Saving the whole aggregate, one save at a time
- Immediate persistence of alarm additions/removals
- Staged light threshold edits tracked by `has_changes`
- Dropping responses of superseded load requests
"""

from datetime import datetime
from enum import Enum
from threading import Lock
from typing import Callable, List, Optional, Union
from loguru import logger

from .device_api_client import DeviceAPIClient, SyncError, SyncErrorKind
from .device_models import (
    AlarmSet,
    DeviceConfig,
    LogEntry,
    NO_ALARMS_MESSAGE,
    TimeValue,
)


class SyncState(str, Enum):
    """Lifecycle of the client"""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"


class SaveInProgressError(RuntimeError):
    """A save for this device is already running"""

    def __init__(self, device_id: str):
        super().__init__(f"Save already in progress for device {device_id}")
        self.device_id = device_id


class ConfigSyncClient:
    """
    Owner of one device's configuration for the lifetime of a screen.

    Keeps the live (editable) config and the snapshot last confirmed by
    the server. Network calls block the calling thread; state changes are
    applied under a lock only after the server answered.
    """

    def __init__(self, api_client: DeviceAPIClient, device_id: str):
        """
        Initialize the sync client.

        Args:
            api_client: DeviceAPIClient instance
            device_id: Identifier of the controlled device
        """
        self.api_client = api_client
        self.device_id = device_id

        self._lock = Lock()
        self._save_lock = Lock()

        self._config: Optional[DeviceConfig] = None
        self._snapshot: Optional[DeviceConfig] = None
        self._stale = False
        self._saving = False
        self._loads_in_flight = 0
        self._load_seq = 0
        self._applied_seq = 0

        self.last_error: Optional[SyncError] = None
        self.last_sync_time: Optional[datetime] = None

        logger.info(f"ConfigSyncClient initialized for device {device_id}")

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def config(self) -> Optional[DeviceConfig]:
        return self._config

    @property
    def snapshot(self) -> Optional[DeviceConfig]:
        """Last configuration confirmed by the server"""
        return self._snapshot

    @property
    def state(self) -> SyncState:
        with self._lock:
            if self._saving:
                return SyncState.SAVING
            if self._config is not None:
                return SyncState.READY
            if self._loads_in_flight:
                return SyncState.LOADING
            return SyncState.IDLE

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def is_stale(self) -> bool:
        """True when the last refresh failed and older data is shown"""
        return self._stale

    @property
    def has_changes(self) -> bool:
        """Threshold edited locally and not saved yet"""
        with self._lock:
            if self._config is None or self._snapshot is None:
                return False
            return self._config.light_threshold != self._snapshot.light_threshold

    def _require_config(self) -> DeviceConfig:
        if self._config is None or self._snapshot is None:
            raise RuntimeError(f"Config for device {self.device_id} is not loaded")
        return self._config

    # =========================================================================
    # LOAD
    # =========================================================================

    def load(self) -> DeviceConfig:
        """
        Fetch the configuration from the server.

        Returns:
            The fetched DeviceConfig

        Raises:
            SyncError: on network/server failure (existing data is kept)
        """
        with self._lock:
            self._load_seq += 1
            seq = self._load_seq
            self._loads_in_flight += 1

        try:
            response = self.api_client.fetch_config(self.device_id)
            if not response.success:
                raise SyncError.from_response(response)
            try:
                fetched = DeviceConfig.from_dict(response.data, device_id=self.device_id)
            except (ValueError, TypeError) as e:
                raise SyncError(SyncErrorKind.SERVER_REJECTED, f"Malformed config: {e}")
        except SyncError as e:
            with self._lock:
                if self._config is not None and seq > self._applied_seq:
                    self._stale = True
                self.last_error = e
            logger.error(f"Loading config for {self.device_id} failed ({e.kind.value}): {e}")
            raise
        finally:
            with self._lock:
                self._loads_in_flight -= 1

        with self._lock:
            if seq <= self._applied_seq:
                logger.debug(f"Discarding superseded load #{seq} for {self.device_id}")
                return fetched
            self._applied_seq = seq
            self._config = fetched
            self._snapshot = fetched
            self._stale = False
            self.last_error = None
            self.last_sync_time = datetime.now()

        logger.info(
            f"Loaded config for {self.device_id}: {len(fetched.alarms)} alarms, "
            f"threshold={fetched.light_threshold}"
        )
        return fetched

    # =========================================================================
    # SAVE
    # =========================================================================

    def save(self, config: Optional[DeviceConfig] = None, wait: bool = False) -> DeviceConfig:
        """
        Persist the whole configuration.

        Args:
            config: Configuration to store (defaults to the live config)
            wait: Queue behind a running save instead of rejecting

        Returns:
            Configuration confirmed by the server

        Raises:
            SaveInProgressError: another save is running and wait=False
            SyncError: the server did not accept the configuration
        """
        return self._save(config, wait=wait)

    def _save(
        self,
        config: Optional[DeviceConfig] = None,
        keep_staged_threshold: bool = False,
        wait: bool = False,
        build: Optional[Callable[[DeviceConfig], DeviceConfig]] = None,
    ) -> DeviceConfig:
        """Save under the save lock; `build` derives the target from the snapshot read after locking"""
        if not self._save_lock.acquire(blocking=wait):
            logger.warning(f"Rejected save for {self.device_id}: another save is running")
            raise SaveInProgressError(self.device_id)

        try:
            with self._lock:
                current = self._require_config()
                base = self._snapshot
            if build is not None:
                target = build(base)
            else:
                target = config if config is not None else current
            if target.device_id != self.device_id:
                raise ValueError(
                    f"Config belongs to device {target.device_id}, not {self.device_id}"
                )
            with self._lock:
                self._saving = True

            payload = target.to_payload()
            response = self.api_client.update_config(self.device_id, payload)

            if not response.success:
                error = SyncError.from_response(response)
                with self._lock:
                    self.last_error = error
                logger.error(f"Saving config for {self.device_id} failed ({error.kind.value}): {error}")
                raise error

            saved = self._confirmed_config(target, response.data)

            with self._lock:
                staged = self._config
                previous = self._snapshot
                self._snapshot = saved
                if (keep_staged_threshold and staged is not None and previous is not None
                        and staged.light_threshold != previous.light_threshold):
                    self._config = saved.with_threshold(staged.light_threshold)
                else:
                    self._config = saved
                # loads issued before this save completed carry older data
                self._applied_seq = self._load_seq
                self._stale = False
                self.last_error = None
                self.last_sync_time = datetime.now()

            logger.success(
                f"Saved config for {self.device_id}: alarms={payload['alarms']}, "
                f"threshold={payload['lightThreshold']}"
            )
            return saved
        finally:
            with self._lock:
                self._saving = False
            self._save_lock.release()

    def _confirmed_config(self, sent: DeviceConfig, data) -> DeviceConfig:
        """Config echoed by the server, or what was sent when the echo is unusable"""
        if isinstance(data, dict) and 'alarms' in data and 'lightThreshold' in data:
            try:
                return DeviceConfig.from_dict(data, device_id=self.device_id)
            except (ValueError, TypeError) as e:
                logger.warning(f"Ignoring malformed save response for {self.device_id}: {e}")
        return sent

    # =========================================================================
    # ALARMS
    # =========================================================================

    def add_alarm(self, value: Union[TimeValue, str]) -> DeviceConfig:
        """
        Add an alarm and persist it immediately.

        Args:
            value: TimeValue or user text ("7:30", "07:30")

        Raises:
            InvalidTimeFormat, DuplicateAlarm: before any network call
            SaveInProgressError, SyncError: from the save
        """
        time_value = value if isinstance(value, TimeValue) else TimeValue.parse(value)
        logger.info(f"Adding alarm {time_value} to {self.device_id}")
        return self._save(
            build=lambda base: base.with_alarms(base.alarms.add(time_value)),
            keep_staged_threshold=True,
        )

    def remove_alarm(self, value: Union[TimeValue, str]) -> DeviceConfig:
        """Remove an alarm and persist it immediately (no-op set is still saved)"""
        time_value = value if isinstance(value, TimeValue) else TimeValue.parse(value)
        logger.info(f"Removing alarm {time_value} from {self.device_id}")
        return self._save(
            build=lambda base: base.with_alarms(base.alarms.remove(time_value)),
            keep_staged_threshold=True,
        )

    @property
    def alarms(self) -> AlarmSet:
        with self._lock:
            return self._config.alarms if self._config is not None else AlarmSet()

    # =========================================================================
    # LIGHT THRESHOLD
    # =========================================================================

    def stage_threshold(self, value: Union[int, float]) -> DeviceConfig:
        """Change the threshold locally (clamped); persisted by save_threshold()"""
        with self._lock:
            current = self._require_config()
            self._config = current.with_threshold(value)
            staged = self._config
        logger.debug(f"Staged threshold {staged.light_threshold} for {self.device_id}")
        return staged

    def save_threshold(self) -> DeviceConfig:
        """Persist the staged threshold together with the current alarms"""
        return self.save()

    # =========================================================================
    # VIEW HELPERS
    # =========================================================================

    def next_alarm_description(self, now: Optional[datetime] = None) -> str:
        config = self._config
        if config is None:
            return NO_ALARMS_MESSAGE
        return config.next_alarm_description(now or datetime.now())

    def load_history(self, limit: int = 50) -> List[LogEntry]:
        """
        Fetch recent device logs (read-only).

        Raises:
            SyncError: on network/server failure
        """
        response = self.api_client.fetch_logs(self.device_id, limit=limit)
        if not response.success:
            error = SyncError.from_response(response)
            logger.error(f"Loading history for {self.device_id} failed ({error.kind.value}): {error}")
            raise error
        if not isinstance(response.data, list):
            raise SyncError(SyncErrorKind.SERVER_REJECTED, "Log payload is not a list")

        entries: List[LogEntry] = []
        for item in response.data:
            try:
                entries.append(LogEntry.from_dict(item))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed log entry {item!r}: {e}")
        logger.info(f"Loaded {len(entries)} log entries for {self.device_id}")
        return entries
