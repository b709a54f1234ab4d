"""Custom exceptions for the style advisor.

This module defines the error taxonomy of the outfit-analysis pipeline.
Input problems are reported before anything runs, weather problems are
recoverable, and model failures are fatal to the current attempt.
"""

from typing import Any, Dict, Optional


class StyleAdvisorError(Exception):
    """Base exception for all style advisor errors.

    Attributes:
        message: The error message
        context: Optional dictionary containing additional error context
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Initialize the exception with a message and optional context.

        Args:
            message: The error message
            context: Optional dictionary containing additional error context
                    such as field names, model names or session phases
        """
        self.message = message
        self.context = context or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the error message with context information.

        Returns:
            Formatted error message including context if available
        """
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {context_str})"
        return self.message


class ConfigurationError(StyleAdvisorError):
    """Raised when required configuration is missing or invalid."""
    pass


class ValidationError(StyleAdvisorError):
    """Raised when user input is malformed or missing.

    This exception is raised when:
    - No photo was selected, or the photo is too large or undecodable
    - Occasion or genre are too short
    - Gender is missing or unknown
    - Weather is not available yet

    It never reaches the model pipeline.
    """

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None,
                 **kwargs):
        """Initialize validation error with per-field messages.

        Args:
            message: The error message
            field_errors: Mapping of form field name to its error message
            **kwargs: Additional context to pass to parent
        """
        context = kwargs.get('context', {})
        self.field_errors = dict(field_errors or {})
        if self.field_errors:
            context['fields'] = ",".join(sorted(self.field_errors))
        super().__init__(message, context)


class WeatherUnavailable(StyleAdvisorError):
    """Raised when the weather lookup cannot produce a summary.

    Callers substitute a default weather string; this is never fatal.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        context = kwargs.get('context', {})
        if status_code:
            context['status_code'] = status_code
        super().__init__(message, context)


class ModelError(StyleAdvisorError):
    """Raised when the recommendation model call fails.

    This exception is raised when:
    - The text model is unreachable or raises
    - The response is not JSON
    - The response does not satisfy the AnalysisResult schema
    """

    def __init__(self, message: str, model_name: Optional[str] = None,
                 api_error: Optional[str] = None, **kwargs):
        """Initialize model error with model name and API error.

        Args:
            message: The error message
            model_name: Name of the model that was called
            api_error: Error message from the API or validator if available
            **kwargs: Additional context to pass to parent
        """
        context = kwargs.get('context', {})
        if model_name:
            context['model_name'] = model_name
        if api_error:
            context['api_error'] = api_error
        super().__init__(message, context)


class ImageGenerationError(StyleAdvisorError):
    """Raised when the image model returns no image payload."""

    def __init__(self, message: str, model_name: Optional[str] = None,
                 api_error: Optional[str] = None, **kwargs):
        context = kwargs.get('context', {})
        if model_name:
            context['model_name'] = model_name
        if api_error:
            context['api_error'] = api_error
        super().__init__(message, context)


class InvalidTransitionError(StyleAdvisorError):
    """Raised when a session action is not allowed in the current phase."""

    def __init__(self, message: str, action: Optional[str] = None,
                 phase: Optional[str] = None, **kwargs):
        context = kwargs.get('context', {})
        if action:
            context['action'] = action
        if phase:
            context['phase'] = phase
        super().__init__(message, context)
