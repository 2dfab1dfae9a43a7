from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any

from django.conf import settings
from zk import ZK
from zk.exception import ZKError, ZKErrorResponse, ZKNetworkError

from zk_gateway.exceptions import (
    DeviceConnectionError,
    DeviceTimeoutError,
    UnexpectedDeviceResponseFormat,
)
from zk_gateway.services.device_payload import attendance_to_entry, extract_records, user_to_entry

logger = logging.getLogger(__name__)

# Failures that mean the clock is slow or overloaded rather than gone.
TIMEOUT_ERRORS = (TimeoutError, ZKErrorResponse, ZKNetworkError)
RETRYABLE_ERRORS = (ZKError, OSError, DeviceConnectionError)


class ZKDeviceClient:
    """Stateful connection to a ZKTeco-protocol punch clock.

    Use it as a context manager so the device socket is released on every
    exit path; a dangling session keeps the clock busy for the next sync.
    """

    def __init__(
        self,
        ip_address: str,
        port: int | None = None,
        *,
        password: int = 0,
        timeout: int | None = None,
        force_udp: bool | None = None,
        omit_ping: bool | None = None,
    ):
        self.ip_address = ip_address
        self.port = port or getattr(settings, "ZK_DEFAULT_PORT", 4370)
        self.timeout = timeout or getattr(settings, "ZK_DEVICE_TIMEOUT", 10)
        self._zk = ZK(
            ip_address,
            port=self.port,
            timeout=self.timeout,
            password=password,
            force_udp=getattr(settings, "ZK_FORCE_UDP", False) if force_udp is None else force_udp,
            ommit_ping=getattr(settings, "ZK_OMIT_PING", False) if omit_ping is None else omit_ping,
        )
        self.conn = None

    @classmethod
    def for_device(cls, device, **kwargs) -> "ZKDeviceClient":
        return cls(device.ip_address, device.port, password=device.password, **kwargs)

    @property
    def address(self) -> str:
        return f"{self.ip_address}:{self.port}"

    @property
    def is_connected(self) -> bool:
        return self.conn is not None

    def __enter__(self) -> "ZKDeviceClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.disconnect()
        return False

    def connect(self) -> bool:
        try:
            conn = self._zk.connect()
        except (ZKError, OSError) as exc:
            self.conn = None
            raise DeviceConnectionError(f"Failed to connect to device {self.address}: {exc}") from exc

        if not conn:
            raise DeviceConnectionError(f"Failed to connect to device {self.address}")

        self.conn = conn
        logger.info("Connected to punch clock", extra={"device_address": self.address})
        return True

    def disconnect(self) -> None:
        if self.conn is None:
            return
        try:
            self.conn.disconnect()
        except (ZKError, OSError):
            logger.warning("Error disconnecting from device", extra={"device_address": self.address}, exc_info=True)
        finally:
            self.conn = None

    def test_connection(self) -> bool:
        try:
            self.connect()
        except DeviceConnectionError:
            return False
        self.disconnect()
        return True

    def _connection(self):
        if self.conn is None:
            raise DeviceConnectionError("Device not connected. Call connect() first.")
        return self.conn

    def _reconnect(self) -> None:
        self.disconnect()
        self.connect()

    def fetch_users(self) -> list[dict]:
        try:
            payload = self._connection().get_users()
        except TimeoutError as exc:
            raise DeviceTimeoutError(f"Timed out reading users from {self.address}", attempts=1) from exc
        except (ZKError, OSError) as exc:
            raise DeviceConnectionError(f"Error fetching users from {self.address}: {exc}") from exc

        return [user_to_entry(user) for user in extract_records(payload or [], "users")]

    def fetch_logs(self, retries: int | None = None) -> list[dict]:
        attempts = max(1, retries if retries is not None else getattr(settings, "ZK_FETCH_RETRIES", 3))
        backoff = getattr(settings, "ZK_RETRY_BACKOFF_SECONDS", 1.0)
        last_error: Exception | None = None
        format_only = True

        self._connection()

        for attempt in range(1, attempts + 1):
            try:
                if attempt > 1:
                    delay = backoff * 2 ** (attempt - 2)
                    logger.warning(
                        "Retrying attendance log fetch",
                        extra={"device_address": self.address, "attempt": attempt, "delay": delay, "error": str(last_error)},
                    )
                    time.sleep(delay)
                    self._reconnect()

                payload = self._connection().get_attendance()
                if payload is None:
                    format_only = False
                    last_error = ZKErrorResponse("empty response")
                    continue

                records = extract_records(payload, "attendances")
                logger.info("Fetched attendance logs", extra={"device_address": self.address, "count": len(records)})
                return [attendance_to_entry(record) for record in records]
            except UnexpectedDeviceResponseFormat as exc:
                last_error = exc
            except RETRYABLE_ERRORS as exc:
                format_only = False
                last_error = exc

        if format_only and isinstance(last_error, UnexpectedDeviceResponseFormat):
            raise last_error

        message = f"Fetching attendance logs from {self.address} failed after {attempts} attempts: {last_error}"
        if isinstance(last_error, TIMEOUT_ERRORS):
            raise DeviceTimeoutError(message, attempts=attempts) from last_error
        raise DeviceConnectionError(message) from last_error

    def clear_logs(self) -> bool:
        try:
            self._connection().clear_attendance()
        except (ZKError, OSError):
            logger.exception("Error clearing attendance logs", extra={"device_address": self.address})
            return False
        return True

    def get_time(self) -> datetime | None:
        try:
            return self._connection().get_time()
        except (ZKError, OSError):
            logger.warning("Error fetching device time", extra={"device_address": self.address}, exc_info=True)
            return None

    def set_time(self, value: datetime) -> bool:
        try:
            self._connection().set_time(value)
        except (ZKError, OSError):
            logger.exception("Error setting device time", extra={"device_address": self.address})
            return False
        return True

    def get_serial_number(self) -> str | None:
        try:
            serial: Any = self._connection().get_serialnumber()
        except (ZKError, OSError):
            logger.warning("Error fetching serial number", extra={"device_address": self.address}, exc_info=True)
            return None
        if not serial:
            return None
        return str(serial).strip() or None
