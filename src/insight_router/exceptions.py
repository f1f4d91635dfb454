"""Custom exceptions for insight-router."""

from __future__ import annotations


class InsightRouterError(Exception):
    """Base exception for orchestration errors."""

    pass


class ProviderError(InsightRouterError):
    """Raised when a provider call fails."""

    def __init__(
        self, message: str, provider_id: str, original_error: Exception | None = None
    ) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            provider_id: Provider that failed
            original_error: Original exception that caused the failure
        """
        self.provider_id = provider_id
        self.original_error = original_error
        super().__init__(message)


class ProviderTimeoutError(ProviderError):
    """Raised when a provider does not answer within its timeout."""

    def __init__(self, provider_id: str, timeout: float) -> None:
        """Initialize the exception.

        Args:
            provider_id: Provider that timed out
            timeout: Timeout in seconds
        """
        self.timeout = timeout
        super().__init__(f"Provider {provider_id} timed out after {timeout}s", provider_id)


class ProviderNotFoundError(ProviderError):
    """Raised when no implementation is registered for a provider id."""

    def __init__(self, provider_id: str) -> None:
        """Initialize the exception.

        Args:
            provider_id: Provider that has no implementation
        """
        super().__init__(f"No implementation registered for provider: {provider_id}", provider_id)


class MalformedResponseError(ProviderError):
    """Raised when a provider returns something that is not an analysis result."""

    def __init__(self, provider_id: str, response: object = None) -> None:
        """Initialize the exception.

        Args:
            provider_id: Provider that returned the response
            response: The invalid response
        """
        self.response = response
        super().__init__(
            f"Provider {provider_id} returned malformed response: {type(response).__name__}",
            provider_id,
        )


class UnknownStrategyError(InsightRouterError):
    """Raised when a selection strategy name is not recognised."""

    def __init__(self, strategy: str) -> None:
        """Initialize the exception.

        Args:
            strategy: The unrecognised strategy
        """
        self.strategy = strategy
        super().__init__(f"Unknown selection strategy: {strategy}")


class ConfigurationError(InsightRouterError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, config_key: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            config_key: The configuration key that caused the error
        """
        self.config_key = config_key
        super().__init__(message)
