class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class InferenceInputError(AppError):
    """Raised when the engine is called with structurally invalid arguments."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class ConflictNotFoundError(AppError):
    """Raised when a conflict index does not exist in the current timetable state."""
    def __init__(self, conflict_index: int, conflict_count: int):
        super().__init__(
            f"Conflict with index {conflict_index} not found",
            status_code=404,
            details={"conflict_index": conflict_index, "conflict_count": conflict_count},
        )

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
