"""
Custom exceptions for binfetch.

This module defines domain-specific exceptions for every way a release
resolution can fail, so callers can tell a bad reference apart from a missing
release, a flaky network, or an asset that does not fit the current platform.
"""

from typing import List, Optional


class BinfetchError(Exception):
    """
    Base exception for all binfetch errors.

    All custom exceptions in binfetch inherit from this class to allow for
    easy catching of all application-specific errors.
    """

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(BinfetchError):
    """
    Exception raised when configuration is invalid or cannot be read.

    Attributes:
        path: The configuration file involved, when known.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


# =============================================================================
# Reference Errors
# =============================================================================


class MalformedReferenceError(BinfetchError):
    """
    Exception raised when a URL cannot be decomposed into owner and repository.

    This includes:
    - Paths with fewer than two segments
    - Hosts that no registered provider handles
    - Strings that are not URLs at all

    Attributes:
        url: The offending reference.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(BinfetchError):
    """
    Base exception for failures reported by a hosting provider API.

    Attributes:
        endpoint: The API endpoint that was accessed.
        status_code: The HTTP status code returned, if any.
        owner: Repository owner of the resolution that failed.
        repo: Repository name of the resolution that failed.
        tag: Release tag that was requested (None for "latest").
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ) -> None:
        """
        Initialize the provider exception.

        Args:
            message: The primary error message.
            endpoint: The API endpoint that was accessed.
            status_code: The HTTP status code returned.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code
        self.owner: Optional[str] = None
        self.repo: Optional[str] = None
        self.tag: Optional[str] = None

    def add_context(self, owner: str, repo: str, tag: Optional[str]) -> None:
        """
        Record which resolution the error belongs to, keeping any earlier context.
        """
        if self.owner is None:
            self.owner = owner
        if self.repo is None:
            self.repo = repo
        if self.tag is None:
            self.tag = tag or None

    def __str__(self) -> str:
        text = super().__str__()
        if self.owner and self.repo:
            target = f"{self.owner}/{self.repo}"
            if self.tag:
                target = f"{target}@{self.tag}"
            return f"{text} ({target})"
        return text


class ReleaseNotFoundError(ProviderError):
    """
    Exception raised when the provider has no release for the request.

    Raised for HTTP 404 responses from release endpoints, and when a
    repository has neither a latest release nor any listed release.
    """

    pass


class ProviderTransportError(ProviderError):
    """
    Exception raised for network, authentication or rate-limit failures.

    These are never retried by the resolver; retry policy belongs to the caller.
    """

    pass


class AuthenticationError(ProviderTransportError):
    """Exception raised when the provider rejects the supplied credentials."""

    pass


class RateLimitError(ProviderTransportError):
    """
    Exception raised when the provider API rate limit is exhausted.

    Attributes:
        reset_time: When the rate limit will reset (Unix timestamp).
        remaining: Number of requests remaining.
    """

    def __init__(
        self,
        message: str = "Provider API rate limit exceeded",
        reset_time: Optional[int] = None,
        remaining: int = 0,
        endpoint: Optional[str] = None,
        status_code: int = 403,
    ) -> None:
        super().__init__(
            message,
            endpoint=endpoint,
            status_code=status_code,
            details=f"Resets at: {reset_time}, Remaining: {remaining}",
        )
        self.reset_time = reset_time
        self.remaining = remaining


# =============================================================================
# Asset Errors
# =============================================================================


class AssetError(BinfetchError):
    """Base exception for asset selection and processing failures."""

    pass


class AssetSelectionError(AssetError):
    """
    Exception raised when no asset, or more than one asset, fits the platform.

    Attributes:
        candidates: Names of the assets that were still in the running when
            selection gave up (empty when nothing matched).
    """

    def __init__(
        self,
        message: str,
        candidates: Optional[List[str]] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.candidates = list(candidates or [])


class AssetProcessingError(AssetError):
    """
    Exception raised when an asset cannot be downloaded or unpacked.

    Attributes:
        url: The asset URL being processed.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
