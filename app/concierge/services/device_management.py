from __future__ import annotations

import logging
from collections.abc import Iterable

import requests

from app.concierge.core.config import settings
from app.concierge.core.metrics import metrics

logger = logging.getLogger(__name__)

MOBILE_DEVICE = "mobile_device"
COMPUTER = "computer"

# Command endpoint and XML body per device kind.
_COMMANDS = {
    MOBILE_DEVICE: (
        "/mobiledevicecommands/command/{command}",
        "<mobile_device_command><general><command>{command}</command></general>"
        "<mobile_devices><mobile_device><id>{device_id}</id></mobile_device></mobile_devices>"
        "</mobile_device_command>",
    ),
    COMPUTER: (
        "/computercommands/command/{command}",
        "<computer_command><general><command>{command}</command></general>"
        "<computers><computer><id>{device_id}</id></computer></computers>"
        "</computer_command>",
    ),
}


class DeviceManagementError(Exception):
    pass


class DeviceManagementClient:
    """Lost-mode lock/unlock through a Jamf classic style API."""

    def __init__(self, session: requests.Session | None = None):
        self._base_url = settings.DEVICE_MGMT_URL.rstrip("/")
        self._auth = (settings.DEVICE_MGMT_USER, settings.DEVICE_MGMT_PASSWORD)
        self._timeout = settings.DEVICE_MGMT_TIMEOUT_SEC
        self._session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self._base_url and self._auth[0] and self._auth[1])

    def _request(self, method: str, endpoint: str, body: str | None = None) -> requests.Response:
        headers = {"Accept": "application/json"}
        if body is not None:
            headers["Content-Type"] = "application/xml"
        try:
            response = self._session.request(
                method,
                f"{self._base_url}/JSSResource{endpoint}",
                data=body,
                headers=headers,
                auth=self._auth,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise DeviceManagementError(f"device management request error: {exc}") from exc
        return response

    def find_device(self, serial_number: str) -> tuple[str, int] | None:
        """Return ``(kind, id)`` for the first inventory record matching the serial."""
        lookups = (
            (f"/mobiledevices/serialnumber/{serial_number}", MOBILE_DEVICE),
            (f"/computers/serialnumber/{serial_number}", COMPUTER),
        )
        for endpoint, key in lookups:
            response = self._request("GET", endpoint)
            if response.status_code == 404:
                continue
            if response.status_code >= 400:
                raise DeviceManagementError(
                    f"device lookup failed: {response.status_code} {response.text}"
                )
            device_id = ((response.json() or {}).get(key) or {}).get("general", {}).get("id")
            if device_id:
                return key, int(device_id)
        return None

    def _send_lost_mode(self, serial_number: str, command: str) -> bool:
        if not self.configured:
            logger.warning("device_mgmt_not_configured", extra={"serial_number": serial_number, "command": command})
            return False
        found = self.find_device(serial_number)
        if found is None:
            logger.warning("device_mgmt_device_not_found", extra={"serial_number": serial_number})
            return False
        kind, device_id = found
        endpoint, body = _COMMANDS[kind]
        response = self._request(
            "POST",
            endpoint.format(command=command),
            body.format(command=command, device_id=device_id),
        )
        if response.status_code >= 400:
            raise DeviceManagementError(f"{command} failed: {response.status_code} {response.text}")
        logger.info(
            "device_mgmt_command_sent",
            extra={"serial_number": serial_number, "command": command, "device_kind": kind},
        )
        return True

    def lock_device(self, serial_number: str) -> bool:
        return self._send_lost_mode(serial_number, "EnableLostMode")

    def unlock_device(self, serial_number: str) -> bool:
        return self._send_lost_mode(serial_number, "DisableLostMode")


def _run_per_device(action: str, serial_numbers: Iterable[str], client: DeviceManagementClient | None) -> None:
    client = client or DeviceManagementClient()
    for serial in serial_numbers:
        try:
            if action == "lock":
                client.lock_device(serial)
            else:
                client.unlock_device(serial)
        except Exception:
            metrics.increment_side_effect_failure(f"device_{action}")
            logger.exception(f"Failed to {action} device", extra={"serial_number": serial})


def lock_devices(serial_numbers: Iterable[str], client: DeviceManagementClient | None = None) -> None:
    _run_per_device("lock", list(serial_numbers), client)


def unlock_devices(serial_numbers: Iterable[str], client: DeviceManagementClient | None = None) -> None:
    _run_per_device("unlock", list(serial_numbers), client)
