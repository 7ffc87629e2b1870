"""Pull request endpoints."""

import logging
from typing import TYPE_CHECKING, Optional

from .errors import NotFoundError, ValidationError
from .git_data import GitDataClient
from .models import FileChange, PullRequest

if TYPE_CHECKING:
    from .client import GitHubClient

logger = logging.getLogger(__name__)


def branch_name(name: str) -> str:
    """Strip ``refs/heads/`` or ``heads/`` from a branch name."""
    for prefix in ("refs/heads/", "heads/"):
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


class PullRequestClient:
    """Opens and reads pull requests within one repository."""

    def __init__(self, client: "GitHubClient", git_data: GitDataClient):
        self._client = client
        self._git_data = git_data

    def create(self, title: str, head: str, base: str, body: Optional[str] = None) -> PullRequest:
        """Open a pull request merging ``head`` into ``base``."""
        head, base = branch_name(head), branch_name(base)
        if head == base:
            raise ValidationError(f"Head and base must differ, both are {head!r}")

        for branch in (head, base):
            try:
                self._git_data.get_reference(f"heads/{branch}")
            except NotFoundError as e:
                raise ValidationError(f"Branch {branch!r} does not exist", status=e.status, data=e.data) from e

        payload = {"title": title, "head": head, "base": base}
        if body is not None:
            payload["body"] = body

        pr = PullRequest.from_api(self._client.request("POST", "/pulls", input=payload))
        logger.info(f"Opened PR #{pr.number}: {head} -> {base}")
        return pr

    def get(self, number: int) -> PullRequest:
        logger.info(f"Fetching PR #{number}")
        return PullRequest.from_api(self._client.request("GET", f"/pulls/{number}"))

    def list_files(self, number: int) -> list[FileChange]:
        """List the files changed by a pull request, with their patches."""
        files = self._client.fetch_all(
            lambda repo: repo.get_pull(number).get_files(),
            lambda f: FileChange.from_api(f.raw_data),
        )
        logger.info(f"Fetched PR #{number}: {len(files)} files changed")
        return files
