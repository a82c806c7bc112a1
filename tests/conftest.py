"""
Pytest fixtures for Device module tests
"""
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.Modules.Device_module.device_api_client import APIResponse, SyncErrorKind
from src.Modules.Device_module.device_sync_manager import ConfigSyncClient


DEVICE_ID = "despertador01"


def ok(data: Any) -> APIResponse:
    return APIResponse(success=True, data=data, status_code=200)


def failure(kind: SyncErrorKind, error: str = "boom", status_code: Optional[int] = None) -> APIResponse:
    return APIResponse(success=False, error=error, status_code=status_code, error_kind=kind)


def config_data(alarms=None, threshold=300, updated_at="2026-10-19T10:15:00.000Z") -> Dict[str, Any]:
    return {
        "deviceId": DEVICE_ID,
        "alarms": list(alarms or []),
        "lightThreshold": threshold,
        "updatedAt": updated_at,
    }


class FakeDeviceAPIClient:
    """Scripted stand-in for DeviceAPIClient that records every call"""

    def __init__(self):
        self.calls: List[tuple] = []
        self.fetch_handlers: List[Callable[[], APIResponse]] = []
        self.update_handlers: List[Callable[[dict], APIResponse]] = []
        self.log_response: APIResponse = ok([])

    def queue_fetch(self, response_or_handler):
        if isinstance(response_or_handler, APIResponse):
            self.fetch_handlers.append(lambda: response_or_handler)
        else:
            self.fetch_handlers.append(response_or_handler)

    def queue_update(self, response_or_handler):
        if isinstance(response_or_handler, APIResponse):
            self.update_handlers.append(lambda payload: response_or_handler)
        else:
            self.update_handlers.append(response_or_handler)

    def fetch_config(self, device_id: str) -> APIResponse:
        self.calls.append(("GET", device_id))
        return self.fetch_handlers.pop(0)()

    def update_config(self, device_id: str, payload: dict) -> APIResponse:
        self.calls.append(("PUT", device_id, payload))
        if self.update_handlers:
            return self.update_handlers.pop(0)(payload)
        return ok({**payload, "deviceId": device_id, "updatedAt": "2026-10-19T11:00:00.000Z"})

    def fetch_logs(self, device_id: str, limit: int = 50) -> APIResponse:
        self.calls.append(("LOGS", device_id, limit))
        return self.log_response

    def close(self):
        self.calls.append(("CLOSE",))

    def puts(self) -> List[dict]:
        return [call[2] for call in self.calls if call[0] == "PUT"]


@pytest.fixture
def fake_api():
    """Fresh fake API client"""
    return FakeDeviceAPIClient()


@pytest.fixture
def sync_client(fake_api):
    """Sync client bound to the fake API"""
    return ConfigSyncClient(fake_api, DEVICE_ID)


@pytest.fixture
def loaded_client(fake_api, sync_client):
    """Sync client already holding ['07:30', '12:00'] / threshold 300"""
    fake_api.queue_fetch(ok(config_data(["07:30", "12:00"], threshold=300)))
    sync_client.load()
    fake_api.calls.clear()
    return sync_client
