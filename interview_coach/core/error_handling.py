"""
Error handling
Standardized error responses, logging and user-facing messages
"""
import logging
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from interview_coach.core.config import settings
from interview_coach.core.metrics import collector


class ErrorCategory(str, Enum):
    """Categories of errors for classification"""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    BUSINESS_LOGIC = "business_logic"
    EXTERNAL_SERVICE = "external_service"
    SYSTEM = "system"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorResponse(BaseModel):
    """Standardized error response body"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "error": "resource_not_found",
                "message": "Interview not found (ID: 3f2b...)",
                "details": {"resource_type": "Interview", "resource_id": "3f2b..."},
                "request_id": "5a0d6c0e-...",
                "timestamp": "2024-01-15T10:30:00Z",
                "category": "not_found",
                "severity": "low",
                "user_message": "The requested resource could not be found.",
                "suggested_action": "Check the identifier and try again.",
            }
        }
    )

    success: bool = Field(False, description="Always false for error bodies")
    error: str = Field(..., description="Error identifier")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    request_id: str = Field(..., description="Unique request identifier")
    timestamp: str = Field(..., description="ISO timestamp of the error")
    category: ErrorCategory = Field(..., description="Error category")
    severity: ErrorSeverity = Field(..., description="Error severity")
    user_message: Optional[str] = Field(None, description="User-friendly message")
    suggested_action: Optional[str] = Field(None, description="Suggested action for the user")
    stack_trace: Optional[str] = Field(None, description="Stack trace (debug mode only)")


class ValidationErrorDetail(BaseModel):
    field: str
    message: str
    code: str
    value: Optional[Any] = None


class ApplicationError(Exception):
    """Base application error with rich context"""

    def __init__(
        self,
        error_code: str,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        suggested_action: Optional[str] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.category = category
        self.severity = severity
        self.status_code = status_code
        self.details = details or {}
        self.user_message = user_message
        self.suggested_action = suggested_action
        self.request_id = str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(message)


class ValidationError(ApplicationError):
    def __init__(
        self,
        message: str,
        field_errors: Optional[List[ValidationErrorDetail]] = None,
        user_message: str = "Some of the submitted values are invalid.",
    ):
        super().__init__(
            error_code="validation_failed",
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.MEDIUM,
            status_code=400,
            details={"field_errors": [error.model_dump() for error in (field_errors or [])]},
            user_message=user_message,
            suggested_action="Check the submitted values and try again.",
        )


class NotFoundError(ApplicationError):
    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, int]] = None,
        user_message: str = "The requested resource could not be found.",
    ):
        message = f"{resource_type} not found"
        if resource_id:
            message += f" (ID: {resource_id})"

        super().__init__(
            error_code="resource_not_found",
            message=message,
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
            user_message=user_message,
            suggested_action="Check the identifier and try again.",
        )


class BusinessLogicError(ApplicationError):
    def __init__(
        self,
        rule: str,
        message: str,
        user_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            error_code="business_rule_violation",
            message=message,
            category=ErrorCategory.BUSINESS_LOGIC,
            severity=ErrorSeverity.MEDIUM,
            status_code=409,
            details={"rule": rule, **(details or {})},
            user_message=user_message or "The action is not allowed right now.",
            suggested_action="Check the current state and try again.",
        )


class ExternalServiceError(ApplicationError):
    def __init__(
        self,
        service: str,
        message: str,
        service_status_code: Optional[int] = None,
        user_message: str = "An external service is temporarily unavailable.",
    ):
        super().__init__(
            error_code="external_service_error",
            message=message,
            category=ErrorCategory.EXTERNAL_SERVICE,
            severity=ErrorSeverity.HIGH,
            status_code=502,
            details={"service": service, "service_status_code": service_status_code},
            user_message=user_message,
            suggested_action="Please try again in a few minutes.",
        )


class ErrorHandler:
    """Centralized error handling"""

    _USER_MESSAGES = {
        400: "The request is malformed.",
        401: "You need to sign in.",
        403: "You are not allowed to perform this action.",
        404: "The requested resource could not be found.",
        409: "The action conflicts with the current state.",
        422: "Some of the submitted values are invalid.",
        500: "An internal error occurred.",
        502: "An external service failed.",
        503: "The service is temporarily unavailable.",
    }

    _SUGGESTED_ACTIONS = {
        400: "Check the request format and try again.",
        401: "Sign in and try again.",
        403: "Contact an administrator.",
        404: "Check the URL or identifier.",
        409: "Check the current state and try again.",
        422: "Correct the submitted values.",
        500: "If the problem persists contact support.",
        502: "Please try again in a few minutes.",
        503: "Please try again later.",
    }

    def __init__(self):
        self.logger = logging.getLogger("interview_coach.errors")

    @property
    def development_mode(self) -> bool:
        return settings.debug

    async def handle_application_error(self, request: Request, error: ApplicationError) -> JSONResponse:
        self._log_error(request, error)
        collector.record_error()

        response = ErrorResponse(
            error=error.error_code,
            message=error.message,
            details=error.details or None,
            request_id=error.request_id,
            timestamp=error.timestamp.isoformat(),
            category=error.category,
            severity=error.severity,
            user_message=error.user_message,
            suggested_action=error.suggested_action,
        )
        if self.development_mode and error.severity == ErrorSeverity.CRITICAL:
            response.stack_trace = traceback.format_exc()

        return JSONResponse(
            status_code=error.status_code,
            content=response.model_dump(mode="json", exclude_none=True),
        )

    async def handle_http_exception(self, request: Request, exc: HTTPException) -> JSONResponse:
        error = ApplicationError(
            error_code=f"http_{exc.status_code}",
            message=str(exc.detail),
            category=self._categorize_http_exception(exc.status_code),
            severity=self._determine_severity(exc.status_code),
            status_code=exc.status_code,
            user_message=self._USER_MESSAGES.get(exc.status_code, "An error occurred."),
            suggested_action=self._SUGGESTED_ACTIONS.get(exc.status_code, "Try again or contact support."),
        )
        response = await self.handle_application_error(request, error)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    async def handle_validation_exception(
        self,
        request: Request,
        exc: Union[RequestValidationError, PydanticValidationError, Exception],
    ) -> JSONResponse:
        field_errors = []
        if isinstance(exc, (RequestValidationError, PydanticValidationError)):
            for error in exc.errors():
                field_errors.append(ValidationErrorDetail(
                    field=".".join(str(loc) for loc in error["loc"]),
                    message=error["msg"],
                    code=error["type"],
                    value=str(error.get("input", ""))[:100],
                ))

        validation_error = ValidationError(message="Validation failed", field_errors=field_errors)
        return await self.handle_application_error(request, validation_error)

    async def handle_generic_exception(self, request: Request, exc: Exception) -> JSONResponse:
        error = ApplicationError(
            error_code="internal_server_error",
            message="An unexpected error occurred",
            category=ErrorCategory.SYSTEM,
            severity=ErrorSeverity.CRITICAL,
            status_code=500,
            details={"exception_type": type(exc).__name__},
            user_message="An unexpected error occurred.",
            suggested_action="Please try again. If the problem persists contact support.",
        )

        self.logger.error(
            f"Unhandled exception: {exc}",
            extra={
                "request_id": error.request_id,
                "path": request.url.path,
                "method": request.method,
            },
            exc_info=exc,
        )
        return await self.handle_application_error(request, error)

    def _log_error(self, request: Request, error: ApplicationError):
        log_data = {
            "request_id": error.request_id,
            "status_code": error.status_code,
            "path": request.url.path,
            "method": request.method,
        }
        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(error.message, extra=log_data)
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error(error.message, extra=log_data)
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(error.message, extra=log_data)
        else:
            self.logger.info(error.message, extra=log_data)

    def _categorize_http_exception(self, status_code: int) -> ErrorCategory:
        if status_code == 401:
            return ErrorCategory.AUTHENTICATION
        elif status_code == 403:
            return ErrorCategory.AUTHORIZATION
        elif status_code == 404:
            return ErrorCategory.NOT_FOUND
        elif status_code == 409:
            return ErrorCategory.BUSINESS_LOGIC
        elif 400 <= status_code < 500:
            return ErrorCategory.VALIDATION
        return ErrorCategory.SYSTEM

    def _determine_severity(self, status_code: int) -> ErrorSeverity:
        if status_code >= 500:
            return ErrorSeverity.CRITICAL
        elif status_code in (401, 403):
            return ErrorSeverity.HIGH
        elif status_code == 409:
            return ErrorSeverity.MEDIUM
        return ErrorSeverity.LOW


# Global error handler
error_handler = ErrorHandler()


# FastAPI exception handlers
async def application_error_handler(request: Request, exc: ApplicationError):
    return await error_handler.handle_application_error(request, exc)


async def http_exception_handler(request: Request, exc: HTTPException):
    return await error_handler.handle_http_exception(request, exc)


async def validation_exception_handler(request: Request, exc: Exception):
    return await error_handler.handle_validation_exception(request, exc)


async def generic_exception_handler(request: Request, exc: Exception):
    return await error_handler.handle_generic_exception(request, exc)
