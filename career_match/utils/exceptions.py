"""
Custom Exception Classes for the Career Match Engine
"""
import asyncio
import functools
from random import uniform
from typing import Dict, Any

from fastapi import HTTPException
from pymongo.errors import PyMongoError


class CareerMatchBaseException(Exception):
    """Base exception for the Career Match Engine"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class DatabaseError(CareerMatchBaseException):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ProcessingError(CareerMatchBaseException):
    """Raised when CV or candidate processing fails"""

    def __init__(self, message: str, document_id: str = None, document_type: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if document_id:
            details['document_id'] = document_id
        if document_type:
            details['document_type'] = document_type
        super().__init__(message, error_code="PROCESSING_ERROR", details=details, **kwargs)


class ConfigurationError(CareerMatchBaseException):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class NotFoundError(CareerMatchBaseException):
    """Raised when a requested resource does not exist"""

    def __init__(self, message: str, resource: str = None, resource_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        if resource_id:
            details['resource_id'] = resource_id
        super().__init__(message, error_code=kwargs.pop("error_code", "NOT_FOUND"), details=details, **kwargs)


class ProfileNotFoundError(NotFoundError):
    """Raised when no profile is stored for a user"""

    def __init__(self, user_id: str, **kwargs):
        self.user_id = user_id
        super().__init__(
            f"Profile not found for user {user_id}",
            resource="profile",
            resource_id=user_id,
            error_code="PROFILE_NOT_FOUND",
            **kwargs
        )


class JobNotFoundError(NotFoundError):
    """Raised when a job posting does not exist"""

    def __init__(self, job_id: str, **kwargs):
        self.job_id = job_id
        super().__init__(
            f"Job {job_id} not found",
            resource="job",
            resource_id=job_id,
            error_code="JOB_NOT_FOUND",
            **kwargs
        )


def map_to_http_exception(exc: CareerMatchBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code_mapping = {
        ConfigurationError: 500,
        NotFoundError: 404,
        DatabaseError: 503,
        ProcessingError: 500,
    }

    status_code = 500
    for exc_type in type(exc).__mro__:
        if exc_type in status_code_mapping:
            status_code = status_code_mapping[exc_type]
            break

    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code, detail=detail)


class ExceptionContext:
    """Context manager that wraps driver errors raised inside an operation"""

    def __init__(self, operation: str, logger=None, collection: str = None, **context):
        self.operation = operation
        self.logger = logger
        self.collection = collection
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        if isinstance(exc_val, CareerMatchBaseException):
            return False

        if isinstance(exc_val, PyMongoError):
            raise DatabaseError(
                f"Database error in {self.operation}: {str(exc_val)}",
                operation=self.operation,
                collection=self.collection,
                details=dict(self.context),
                cause=exc_val
            ) from exc_val

        return False


def retry_with_logging(
    max_attempts: int = 3,
    backoff_factor: float = 0.5,
    exceptions: tuple = (Exception,),
    logger=None
):
    """Decorator to retry operations with exponential backoff and logging"""

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )
                    if attempt == max_attempts - 1:
                        if logger:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise
                    await asyncio.sleep(backoff_factor * (2 ** attempt) + uniform(0, backoff_factor))

        return async_wrapper

    return decorator
