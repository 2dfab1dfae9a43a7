from __future__ import annotations


class ZKGatewayError(Exception):
    """Base class for punch-clock sync failures."""


class DeviceConnectionError(ZKGatewayError):
    pass


class DeviceTimeoutError(ZKGatewayError):
    guidance = "device may have too many logs; clear logs first"

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(f"{message} ({self.guidance})")
        self.attempts = attempts


class UnexpectedDeviceResponseFormat(ZKGatewayError):
    def __init__(self, payload_type: str, keys: list[str] | None = None):
        detail = f"Unexpected device response format: {payload_type}"
        if keys:
            detail += f" with keys {', '.join(sorted(keys))}"
        super().__init__(detail)
        self.payload_type = payload_type
        self.keys = keys or []


# Per-punch skips. The batch normalizer counts them, they never abort a sync.


class PunchSkipped(ZKGatewayError):
    pass


class NoTimestamp(PunchSkipped):
    pass


class NoUserId(PunchSkipped):
    pass


class UnmappedDeviceUser(PunchSkipped):
    def __init__(self, device_user_id: str):
        super().__init__(f"No member mapping found for device user ID: {device_user_id}")
        self.device_user_id = device_user_id


class RecordWriteError(ZKGatewayError):
    pass
