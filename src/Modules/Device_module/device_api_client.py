"""
API Client for the blind controller configuration server.

Handles the HTTP communication with the device backend:
- Fetching the current device configuration
- Replacing the configuration (alarms + light threshold)
- Fetching the read-only sensor log history
"""

import requests
from enum import Enum
from typing import Optional, Any, Dict
from loguru import logger


class SyncErrorKind(str, Enum):
    """Failure categories of a remote call"""
    NETWORK_UNAVAILABLE = "network_unavailable"
    TIMEOUT = "timeout"
    SERVER_REJECTED = "server_rejected"


class APIResponse:
    """API response wrapper"""

    def __init__(
        self,
        success: bool,
        data: Any = None,
        error: Optional[str] = None,
        status_code: Optional[int] = None,
        error_kind: Optional[SyncErrorKind] = None
    ):
        self.success = success
        self.data = data
        self.error = error
        self.status_code = status_code
        self.error_kind = error_kind

    def __repr__(self) -> str:
        if self.success:
            return f"<APIResponse success=True status={self.status_code}>"
        return f"<APIResponse success=False kind={self.error_kind} error='{self.error}' status={self.status_code}>"


class SyncError(Exception):
    """Remote call failed; local state was left untouched"""

    def __init__(self, kind: SyncErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: APIResponse) -> "SyncError":
        return cls(
            response.error_kind or SyncErrorKind.SERVER_REJECTED,
            response.error or "Unknown error",
            status_code=response.status_code
        )


class DeviceAPIClient:
    """
    API client for the device configuration resource.

    Every call returns an APIResponse; transport problems are reported
    through `error_kind` instead of being raised.
    """

    def __init__(self, base_url: str, timeout: float = 10):
        """
        Initialize the API client.

        Args:
            base_url: Server URL (e.g. "http://192.168.15.6:3000")
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.session = requests.Session()
        self.timeout = timeout

        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        })

        logger.info(f"DeviceAPIClient initialized with base_url: {base_url}")

    def _request(self, method: str, path: str, **kwargs) -> APIResponse:
        """
        Perform an HTTP request and translate the outcome.

        Args:
            method: HTTP method (GET, PUT)
            path: Path below base_url
            **kwargs: Extra arguments for requests (json, params)

        Returns:
            APIResponse with the envelope `data` on success
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout: server took too long to respond ({method} {path})")
            return APIResponse(success=False, error=f"Timeout: {e}", error_kind=SyncErrorKind.TIMEOUT)
        except requests.exceptions.RequestException as e:
            logger.error(f"Connection error: could not reach the server ({method} {path}): {e}")
            return APIResponse(
                success=False,
                error=f"Network error: {e}",
                error_kind=SyncErrorKind.NETWORK_UNAVAILABLE
            )

        return self._handle_response(response)

    def _handle_response(self, response: requests.Response) -> APIResponse:
        """
        Validate status code and the {success, data} envelope.

        Args:
            response: requests response

        Returns:
            APIResponse object
        """
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            error_message = str(e)
            try:
                error_data = response.json()
                if isinstance(error_data, dict):
                    error_message = error_data.get('error') or error_data.get('message') or error_message
            except ValueError:
                pass

            logger.error(f"API error: {response.status_code} {error_message}")
            return APIResponse(
                success=False,
                error=error_message,
                status_code=response.status_code,
                error_kind=SyncErrorKind.SERVER_REJECTED
            )

        try:
            body = response.json()
        except ValueError:
            logger.error(f"API error: {response.status_code} invalid JSON body")
            return APIResponse(
                success=False,
                error="Invalid JSON in server response",
                status_code=response.status_code,
                error_kind=SyncErrorKind.SERVER_REJECTED
            )

        if not isinstance(body, dict) or not body.get('success') or 'data' not in body:
            error_message = "Server reported failure"
            if isinstance(body, dict):
                error_message = body.get('error') or body.get('message') or error_message
            logger.error(f"API error: {response.status_code} {error_message}")
            return APIResponse(
                success=False,
                error=error_message,
                status_code=response.status_code,
                error_kind=SyncErrorKind.SERVER_REJECTED
            )

        return APIResponse(success=True, data=body['data'], status_code=response.status_code)

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def fetch_config(self, device_id: str) -> APIResponse:
        """
        Fetch the configuration of a device.

        Args:
            device_id: Device identifier

        Returns:
            APIResponse with {alarms, lightThreshold, deviceId, updatedAt}
        """
        logger.debug(f"Fetching config for device {device_id}")
        return self._request('GET', f"/api/config/{device_id}")

    def update_config(self, device_id: str, payload: Dict[str, Any]) -> APIResponse:
        """
        Replace the configuration of a device.

        Args:
            device_id: Device identifier
            payload: {alarms: [...], lightThreshold: int}

        Returns:
            APIResponse with the stored configuration
        """
        logger.debug(f"Updating config for device {device_id}: {payload}")
        return self._request('PUT', f"/api/config/{device_id}", json=payload)

    # =========================================================================
    # HISTORY
    # =========================================================================

    def fetch_logs(self, device_id: str, limit: int = 50) -> APIResponse:
        """
        Fetch recent sensor logs of a device.

        Args:
            device_id: Device identifier
            limit: Maximum number of entries

        Returns:
            APIResponse with a list of log entries
        """
        logger.debug(f"Fetching {limit} log entries for device {device_id}")
        return self._request('GET', f"/api/logs/{device_id}", params={'limit': limit})

    def close(self):
        """Close the session"""
        self.session.close()
        logger.debug("API client session closed")


def create_api_client(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None
) -> DeviceAPIClient:
    """
    Factory function for the API client.

    Args:
        base_url: Server URL (defaults to API_BASE_URL from config)
        timeout: Request timeout (defaults to REQUEST_TIMEOUT from config)

    Returns:
        Configured DeviceAPIClient
    """
    from ...core.config import config

    return DeviceAPIClient(
        base_url=base_url or config.API_BASE_URL,
        timeout=timeout if timeout is not None else config.REQUEST_TIMEOUT
    )
