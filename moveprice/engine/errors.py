from __future__ import annotations

from typing import Any, Dict, Optional


class EngineError(Exception):
    """
    Base for all fatal engine errors. Carries a stable code + meta
    so callers can map it onto an API error without parsing messages.
    """

    code = "ENGINE_ERROR"

    def __init__(self, message: str, meta: Optional[Dict[str, Any]] = None):
        self.message = str(message)
        self.meta = meta or {}
        super().__init__(f"{self.code}: {self.message}")


class UnknownServiceError(EngineError):
    code = "UNKNOWN_SERVICE"

    def __init__(self, service: Any):
        super().__init__(f"Unknown service type: {service}", {"service": service})


class UnknownActionTypeError(EngineError):
    code = "UNKNOWN_ACTION_TYPE"


class InvalidConditionError(EngineError):
    code = "INVALID_CONDITION"


class RuleSetError(EngineError):
    code = "INVALID_RULESET"
