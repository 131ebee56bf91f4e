from typing import List
from cyberasio.core.models import Violation


class CyberAsioError(Exception):
    """Base class for errors surfaced to API clients as soft errors"""


class NotFound(CyberAsioError):
    def __init__(self, device_id: int):
        self.device_id = device_id
        super().__init__(f"Device not found: {device_id}")


class InvalidTransition(CyberAsioError):
    def __init__(self, device_id: int, status, target):
        self.device_id = device_id
        self.status = status
        self.target = target
        super().__init__(
            f"Device {device_id} cannot transition from {status.value} to {target.value}"
        )


class ValidationError(CyberAsioError):
    def __init__(self, violations: List[Violation]):
        self.violations = list(violations)
        details = "; ".join(v.message for v in self.violations)
        super().__init__(f"Invalid audio configuration: {details}")


class UnavailableComponent(CyberAsioError):
    def __init__(self, component: str):
        self.component = component
        super().__init__(f"{component} not available")


class IOFailure(CyberAsioError):
    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to access {self.path}: {reason}")


class InvalidRequest(CyberAsioError):
    """A request parameter is missing or cannot be interpreted"""
