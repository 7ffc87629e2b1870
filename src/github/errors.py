"""Typed failures raised by the GitHub resource clients."""

from typing import Any, Optional

from github import GithubException


class GitHubAPIError(Exception):
    """Base class for failures reported by the GitHub API."""

    def __init__(self, message: str, status: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data


class ValidationError(GitHubAPIError):
    """Malformed or inconsistent request (bad position, dangling sha, ...)."""


class NotFoundError(GitHubAPIError):
    """Referenced id, sha, number or ref does not exist."""


class ConflictError(GitHubAPIError):
    """Reference update rejected by the fast-forward policy."""


STATUS_ERRORS: dict[int, type[GitHubAPIError]] = {
    400: ValidationError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


def _describe(data: Any) -> str:
    if not isinstance(data, dict):
        return str(data) if data else ""
    message = data.get("message", "")
    details = []
    for error in data.get("errors") or []:
        if isinstance(error, dict):
            details.append(error.get("message") or error.get("code") or "")
        else:
            details.append(str(error))
    details = [d for d in details if d]
    if details:
        return f"{message}: {'; '.join(details)}" if message else "; ".join(details)
    return message


def translate(exc: GithubException) -> GitHubAPIError:
    """Map a PyGithub exception onto the typed taxonomy."""
    error_class = STATUS_ERRORS.get(exc.status, GitHubAPIError)
    message = _describe(exc.data) or f"GitHub API request failed with status {exc.status}"
    return error_class(message, status=exc.status, data=exc.data)
