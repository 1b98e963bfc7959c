"""Error handling utilities for the case management backend."""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum


class ErrorType(Enum):
    """Enumeration of error types raised outside the status engine."""
    
    # Case store errors
    CASE_NOT_FOUND = "CASE_NOT_FOUND"
    CASE_DATA_INVALID = "CASE_DATA_INVALID"
    CASE_FIELD_MISSING = "CASE_FIELD_MISSING"
    
    # Sample data errors
    SAMPLE_CASES_NOT_FOUND = "SAMPLE_CASES_NOT_FOUND"
    SAMPLE_CASES_INVALID = "SAMPLE_CASES_INVALID"
    
    # Configuration errors
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"


@dataclass
class ErrorContext:
    """
    Context information for errors raised by the store and loaders.
    
    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message
        recoverable: Whether the caller can continue after the error
        fallback_action: Optional description of what the caller should do
        details: Optional additional error details
        original_exception: Optional original exception that caused this error
    """
    
    error_type: ErrorType
    message: str
    recoverable: bool
    fallback_action: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[Exception] = None
    
    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error context to dictionary for logging/serialization.
        
        Returns:
            Dictionary representation of error context
        """
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "fallback_action": self.fallback_action,
            "details": self.details or {},
            "original_exception": str(self.original_exception) if self.original_exception else None
        }


class CaseflowError(Exception):
    """
    Base exception for all case management errors.
    
    Attributes:
        context: ErrorContext with detailed error information
    """
    
    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)
    
    def __str__(self) -> str:
        base = f"{self.context.error_type.value}: {self.context.message}"
        if self.context.fallback_action:
            base += f" (Fallback: {self.context.fallback_action})"
        return base
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return self.context.to_dict()


class CaseNotFoundError(CaseflowError):
    """Raised when a case id is not present in the repository."""
    
    @classmethod
    def for_id(
        cls,
        case_id: str,
        fallback_action: Optional[str] = None
    ) -> "CaseNotFoundError":
        """
        Create error for an unknown case id.
        
        Args:
            case_id: The case id that was looked up
            fallback_action: Optional fallback action
            
        Returns:
            CaseNotFoundError instance
        """
        context = ErrorContext(
            error_type=ErrorType.CASE_NOT_FOUND,
            message=f"Case '{case_id}' not found",
            recoverable=True,
            fallback_action=fallback_action or "Reload the case list",
            details={"case_id": case_id}
        )
        return cls(context)


class CaseDataError(CaseflowError):
    """Raised when a case payload cannot be turned into a case record."""
    
    @classmethod
    def invalid_payload(
        cls,
        payload: Any,
        reason: str
    ) -> "CaseDataError":
        """
        Create error for a payload that is not a case mapping.
        
        Args:
            payload: The rejected payload
            reason: Why it was rejected
            
        Returns:
            CaseDataError instance
        """
        context = ErrorContext(
            error_type=ErrorType.CASE_DATA_INVALID,
            message=f"Invalid case payload: {reason}",
            recoverable=False,
            details={"payload_type": type(payload).__name__}
        )
        return cls(context)
    
    @classmethod
    def missing_field(
        cls,
        field_name: str,
        case_id: Optional[str] = None
    ) -> "CaseDataError":
        """
        Create error for a required field missing from a case payload.
        
        Args:
            field_name: Name of the missing field
            case_id: Case id, when known
            
        Returns:
            CaseDataError instance
        """
        context = ErrorContext(
            error_type=ErrorType.CASE_FIELD_MISSING,
            message=f"Case payload is missing required field '{field_name}'",
            recoverable=False,
            details={"field": field_name, "case_id": case_id}
        )
        return cls(context)


class SampleDataError(CaseflowError):
    """Raised when the sample case file cannot be loaded."""
    
    @classmethod
    def not_found(cls, path: str) -> "SampleDataError":
        context = ErrorContext(
            error_type=ErrorType.SAMPLE_CASES_NOT_FOUND,
            message=f"Sample case file not found at '{path}'",
            recoverable=True,
            fallback_action="Start with an empty repository",
            details={"path": path}
        )
        return cls(context)
    
    @classmethod
    def invalid(
        cls,
        path: str,
        error: Exception
    ) -> "SampleDataError":
        context = ErrorContext(
            error_type=ErrorType.SAMPLE_CASES_INVALID,
            message=f"Failed to load sample cases from '{path}': {str(error)}",
            recoverable=False,
            details={"path": path},
            original_exception=error
        )
        return cls(context)


class ConfigError(CaseflowError):
    """Raised when configuration is missing or malformed."""
    
    @classmethod
    def missing_file(cls, config_path: str) -> "ConfigError":
        """
        Create error for a missing configuration file.
        
        Args:
            config_path: Path that was looked up
            
        Returns:
            ConfigError instance
        """
        context = ErrorContext(
            error_type=ErrorType.CONFIG_MISSING,
            message=f"Configuration file not found at '{config_path}'",
            recoverable=False,
            fallback_action="Run from the project root or pass an explicit path",
            details={"config_path": config_path}
        )
        return cls(context)
    
    @classmethod
    def invalid_value(
        cls,
        key: str,
        value: Any,
        error: Optional[Exception] = None
    ) -> "ConfigError":
        """
        Create error for a configuration value of the wrong shape.
        
        Args:
            key: Dotted configuration key
            value: Offending value
            error: Optional original exception
            
        Returns:
            ConfigError instance
        """
        context = ErrorContext(
            error_type=ErrorType.CONFIG_INVALID,
            message=f"Invalid configuration value for '{key}': {value!r}",
            recoverable=False,
            details={"key": key},
            original_exception=error
        )
        return cls(context)


def handle_store_error(
    error: CaseflowError,
    operation: str,
    logger
) -> None:
    """
    Log a store error at a level matching its recoverability and re-raise it.
    
    Args:
        error: The error to report
        operation: Description of the operation that failed
        logger: Logger instance for error logging
        
    Raises:
        CaseflowError: The same error, unchanged
    """
    if error.context.recoverable:
        logger.warning(f"Recoverable error during {operation}: {error}")
    else:
        logger.error(f"Non-recoverable error during {operation}: {error}")
    
    raise error
