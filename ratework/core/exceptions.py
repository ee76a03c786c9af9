from typing import Any, Dict, Optional

class RateWorkError(Exception):
    """Base exception class for all RateWork exceptions"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

class ConfigError(RateWorkError):
    """Raised when there is a configuration error"""
    pass

class LoggerError(RateWorkError):
    """Raised when there is a logging error"""
    pass

class ValidationError(RateWorkError):
    """Raised when data validation fails"""
    pass

class ProcessingError(RateWorkError):
    """Raised when processing of data fails"""
    pass

class OperationCancelledError(RateWorkError):
    """Raised when a cancellation token fires or its deadline passes"""
    pass
