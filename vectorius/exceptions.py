"""
Vectorius - Custom Exceptions and Exception Handlers
"""
import structlog
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = structlog.get_logger('exceptions')


class VectoriusException(Exception):
    """Base exception for Vectorius"""
    status_code = 400

    def __init__(self, message: str, code: str = "VECTORIUS_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {
            'error': self.message,
            'code': self.code,
        }


class NotConfiguredException(VectoriusException):
    """A feature is switched off because its configuration is absent"""
    status_code = 503

    def __init__(self, message: str):
        super().__init__(message, code="NOT_CONFIGURED")
        logger.warning(f"Feature not configured: {message}")


class ValidationException(VectoriusException):
    """Validation-related exceptions"""
    status_code = 400

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code=code)
        logger.warning(f"Validation error: {message}")


class UnsupportedTypeException(ValidationException):
    def __init__(self, message: str):
        super().__init__(message, code="UNSUPPORTED_TYPE")


class FileTooLargeException(ValidationException):
    def __init__(self, message: str):
        super().__init__(message, code="FILE_TOO_LARGE")


class AuthenticationException(VectoriusException):
    """Authentication-related exceptions"""
    status_code = 401

    def __init__(self, message: str = "Unauthorized", code: str = "AUTH_ERROR"):
        super().__init__(message, code=code)
        logger.warning(f"Authentication error: {message}")


class InvalidTokenException(AuthenticationException):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, code="INVALID_TOKEN")


class TokenExpiredException(AuthenticationException):
    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class TokenAlreadyUsedException(AuthenticationException):
    def __init__(self, message: str = "Token has already been used"):
        super().__init__(message, code="TOKEN_ALREADY_USED")


class AuthorizationException(VectoriusException):
    """Authorization-related exceptions"""
    status_code = 403

    def __init__(self, message: str = "Forbidden", code: str = "FORBIDDEN"):
        super().__init__(message, code=code)
        logger.warning(f"Authorization error: {message}")


class PersonaDisabledException(AuthorizationException):
    def __init__(self, message: str = "Persona testing is disabled in production"):
        super().__init__(message, code="PERSONA_DISABLED")


class NotFoundException(VectoriusException):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class UpstreamException(VectoriusException):
    """A hosted service answered with a failure or with something unusable"""
    status_code = 502

    def __init__(self, message: str, code: str = "UPSTREAM_ERROR"):
        super().__init__(message, code=code)
        logger.error(f"Upstream error: {message}")


class UnparseableResponseException(UpstreamException):
    def __init__(self, message: str = "Unable to parse AI response."):
        super().__init__(message, code="UNPARSEABLE_RESPONSE")


class SchemaMismatchException(UpstreamException):
    def __init__(self, message: str = "AI response does not match the expected shape."):
        super().__init__(message, code="SCHEMA_MISMATCH")


class FatalException(VectoriusException):
    """Internal conditions the caller cannot fix"""
    status_code = 500

    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        super().__init__(message, code=code)
        logger.error(f"Fatal error: {message}")


class UserNotFoundException(FatalException):
    def __init__(self, message: str = "Test user not found"):
        super().__init__(message, code="USER_NOT_FOUND")


class SessionMintFailedException(FatalException):
    def __init__(self, message: str = "Failed to create session"):
        super().__init__(message, code="SESSION_MINT_FAILED")


class StorageException(FatalException):
    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")


def register_exception_handlers(app):
    """Register exception handlers with Flask app"""

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle HTTP exceptions"""
        return jsonify({
            'error': e.description,
            'code': e.name.upper().replace(' ', '_'),
        }), e.code

    @app.errorhandler(VectoriusException)
    def handle_vectorius_exception(e):
        """Handle Vectorius custom exceptions"""
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(Exception)
    def handle_generic_exception(e):
        """Handle all other exceptions"""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'error': 'Unexpected server error',
            'code': 'INTERNAL_ERROR',
        }), 500
