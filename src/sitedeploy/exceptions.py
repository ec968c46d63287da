"""Custom exceptions for sitedeploy."""

from typing import Optional


class SiteDeployError(Exception):
    """Base exception for sitedeploy errors."""
    pass


class ConfigurationError(SiteDeployError):
    """Raised when required credentials or identifiers are missing."""
    pass


class ValidationError(SiteDeployError):
    """Raised when input validation fails."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = list(errors or [message])


class RemoteError(SiteDeployError):
    """Raised when the remote API answers with a non-2xx status."""

    def __init__(self, status_code: Optional[int], message: str):
        self.status_code = status_code
        self.message = message
        prefix = f"HTTP {status_code}" if status_code is not None else "Request failed"
        super().__init__(f"{prefix}: {message}")


class AuthError(RemoteError):
    """Raised on 401/403 responses. Never retried."""

    hint = "Check that GITHUB_TOKEN is set and has write access to the repository."

    def __str__(self) -> str:
        return f"{super().__str__()} ({self.hint})"


class TransientError(RemoteError):
    """Raised on 5xx responses and network timeouts. Retried with backoff."""
    pass


class NotFoundError(RemoteError):
    """Raised when a ref, commit, file or snapshot does not exist."""

    def __init__(self, message: str, status_code: Optional[int] = 404):
        super().__init__(status_code, message)


class ConflictError(SiteDeployError):
    """Raised when a branch moved while a commit was being built."""

    def __init__(self, branch: str, expected_sha: str, actual_sha: Optional[str]):
        self.branch = branch
        self.expected_sha = expected_sha
        self.actual_sha = actual_sha
        super().__init__(
            f"Branch '{branch}' moved during publish "
            f"(expected {expected_sha[:7]}, found {(actual_sha or 'unknown')[:7]}). "
            "Publish failed, please retry."
        )
