from typing import Optional, Dict, Any, Sequence


class CloudWardenException(Exception):
    """Base exception for all CloudWarden errors."""
    def __init__(
        self,
        message: str,
        code: str = "internal_error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class ResourceNotFoundError(CloudWardenException):
    """Raised when a rule, category, result or stored resource does not exist."""
    def __init__(self, entity: str, value: Any, code: str = "not_found"):
        super().__init__(
            f"No entity found with {entity}: {value}",
            code=code,
            status_code=404,
            details={"entity": entity, "value": str(value)},
        )
        self.entity = entity
        self.value = value


class InvalidInputError(CloudWardenException):
    """Raised when a request names parameters the core cannot act on."""
    def __init__(self, params: Sequence[str], code: str = "invalid_parameter"):
        params = list(params)
        super().__init__(
            f"Incorrect value for parameter: {', '.join(params)}",
            code=code,
            status_code=400,
            details={"params": params},
        )
        self.params = params


class AdapterError(CloudWardenException):
    """Raised when an external cloud adapter or the account service fails."""
    def __init__(self, message: str, code: str = "adapter_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status_code=502, details=details)


class PersistenceError(CloudWardenException):
    """Raised when a store write or read fails."""
    def __init__(self, message: str, code: str = "persistence_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status_code=500, details=details)
