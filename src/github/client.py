"""GitHub API client for the git database, pull request and review comment endpoints."""

import os
import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, TypeVar

from github import Auth, Github, GithubException
from github.Repository import Repository

from .errors import translate
from .git_data import GitDataClient
from .pulls import PullRequestClient
from .review_comments import ReviewCommentClient

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"
MAX_PER_PAGE = 100

T = TypeVar("T")


def make_name_with_timestamp(prefix: str) -> str:
    """Build a repository name that will not collide with earlier runs."""
    return f"{prefix}-{datetime.now().strftime('%Y%m%d%H%M%S%f')}"


class GitHubClient:
    """Client for interacting with one GitHub repository.

    Authentication, transport, retries and pagination belong to PyGithub;
    this class shapes requests and turns failures into typed errors.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        repo_name: Optional[str] = None,
        base_url: Optional[str] = None,
        per_page: Optional[int] = None,
        github: Optional[Github] = None,
    ):
        self.repo_name = repo_name or os.environ.get("GITHUB_REPOSITORY")
        if not self.repo_name:
            raise ValueError("Repository name is required. Set GITHUB_REPOSITORY environment variable.")
        if self.repo_name.count("/") != 1:
            raise ValueError(f"Repository must be in owner/repo format, got {self.repo_name!r}")

        self.base_url = base_url or os.environ.get("GITHUB_API_URL", DEFAULT_BASE_URL)
        self.per_page = min(int(per_page or os.environ.get("GITHUB_PER_PAGE", MAX_PER_PAGE)), MAX_PER_PAGE)

        if github is None:
            self.token = token or os.environ.get("GITHUB_TOKEN")
            if not self.token:
                raise ValueError("GitHub token is required. Set GITHUB_TOKEN environment variable.")
            github = Github(auth=Auth.Token(self.token), base_url=self.base_url, per_page=self.per_page, lazy=True)
        else:
            self.token = token

        self._github = github
        self._requester = github.requester
        self.repo = github.get_repo(self.repo_name)
        self._git_data = None
        self._pulls = None
        self._review_comments = None
        logger.info(f"Initialized GitHub client for {self.repo_name}")

    @classmethod
    def create_repository(
        cls,
        name: str,
        auto_init: bool = True,
        private: bool = False,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        github: Optional[Github] = None,
    ) -> "GitHubClient":
        """Create a repository for the authenticated user and bind a client to it."""
        if github is None:
            token = token or os.environ.get("GITHUB_TOKEN")
            if not token:
                raise ValueError("GitHub token is required. Set GITHUB_TOKEN environment variable.")
            base_url = base_url or os.environ.get("GITHUB_API_URL", DEFAULT_BASE_URL)
            github = Github(auth=Auth.Token(token), base_url=base_url, lazy=True)

        try:
            repo = github.get_user().create_repo(name, private=private, auto_init=auto_init)
        except GithubException as e:
            logger.error(f"Failed to create repository {name}: {e}")
            raise translate(e) from e

        logger.info(f"Created repository {repo.full_name}")
        return cls(token=token, repo_name=repo.full_name, base_url=base_url, github=github)

    @property
    def git_data(self) -> GitDataClient:
        if self._git_data is None:
            self._git_data = GitDataClient(self)
        return self._git_data

    @property
    def pulls(self) -> PullRequestClient:
        if self._pulls is None:
            self._pulls = PullRequestClient(self, self.git_data)
        return self._pulls

    @property
    def review_comments(self) -> ReviewCommentClient:
        if self._review_comments is None:
            self._review_comments = ReviewCommentClient(self, self.pulls)
        return self._review_comments

    def request(
        self,
        verb: str,
        path: str,
        parameters: Optional[dict] = None,
        input: Optional[dict] = None,
    ) -> Any:
        """Send one request relative to the repository and return the decoded body."""
        url = f"/repos/{self.repo_name}{path}"
        logger.debug(f"{verb} {url}")
        try:
            _, data = self._requester.requestJsonAndCheck(verb, url, parameters=parameters, input=input)
        except GithubException as e:
            error = translate(e)
            logger.debug(f"{verb} {url} failed with {type(error).__name__}: {error}")
            raise error from e
        return data

    def fetch_all(self, listing: Callable[[Repository], Iterable], convert: Callable[[Any], T]) -> list[T]:
        """Walk a PyGithub listing of the repository and convert every item.

        ``listing`` receives the repository and returns a ``PaginatedList``;
        pages are followed through the API's Link headers.
        """
        try:
            return [convert(item) for item in listing(self.repo)]
        except GithubException as e:
            error = translate(e)
            logger.debug(f"Listing on {self.repo_name} failed with {type(error).__name__}: {error}")
            raise error from e
