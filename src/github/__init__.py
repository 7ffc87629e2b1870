"""GitHub API integration."""

from .client import GitHubClient, make_name_with_timestamp
from .errors import ConflictError, GitHubAPIError, NotFoundError, ValidationError
from .git_data import GitDataClient
from .models import (
    Blob,
    BlobEncoding,
    Commit,
    CommentSort,
    DeleteResult,
    FileChange,
    FileMode,
    PullRequest,
    Reference,
    ReviewComment,
    SortDirection,
    Tree,
    TreeItem,
    TreeType,
)
from .pulls import PullRequestClient
from .review_comments import ReviewCommentClient

__all__ = [
    "GitHubClient",
    "make_name_with_timestamp",
    "GitDataClient",
    "PullRequestClient",
    "ReviewCommentClient",
    "GitHubAPIError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "Blob",
    "BlobEncoding",
    "Commit",
    "CommentSort",
    "DeleteResult",
    "FileChange",
    "FileMode",
    "PullRequest",
    "Reference",
    "ReviewComment",
    "SortDirection",
    "Tree",
    "TreeItem",
    "TreeType",
]
