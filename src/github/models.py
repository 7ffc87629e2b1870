"""Data models for the GitHub git database, pull requests and review comments."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .errors import NotFoundError


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class BlobEncoding(str, Enum):
    """Encodings accepted when creating a blob."""
    UTF8 = "utf-8"
    BASE64 = "base64"


class TreeType(str, Enum):
    """Object types a tree entry can point at."""
    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"


class FileMode(str, Enum):
    """Git file modes for tree entries."""
    FILE = "100644"
    EXECUTABLE = "100755"
    SUBDIRECTORY = "040000"
    SUBMODULE = "160000"
    SYMLINK = "120000"


class SortDirection(str, Enum):
    """Sort direction for listings."""
    ASCENDING = "asc"
    DESCENDING = "desc"


class CommentSort(str, Enum):
    """Timestamp a review comment listing is sorted by."""
    CREATED = "created"
    UPDATED = "updated"


@dataclass
class Blob:
    """Raw file content addressed by its sha."""
    sha: str
    content: Optional[str] = None
    encoding: Optional[str] = None
    size: Optional[int] = None
    url: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Blob":
        return cls(
            sha=data["sha"], content=data.get("content"), encoding=data.get("encoding"),
            size=data.get("size"), url=data.get("url", ""),
        )


@dataclass
class TreeItem:
    """One entry of a tree."""
    path: str
    sha: str
    mode: FileMode = FileMode.FILE
    type: TreeType = TreeType.BLOB

    def to_api(self) -> dict:
        return {
            "path": self.path,
            "mode": FileMode(self.mode).value,
            "type": TreeType(self.type).value,
            "sha": self.sha,
        }

    @classmethod
    def from_api(cls, data: dict) -> "TreeItem":
        return cls(
            path=data["path"], sha=data["sha"],
            mode=FileMode(data.get("mode", FileMode.FILE.value)),
            type=TreeType(data.get("type", TreeType.BLOB.value)),
        )


@dataclass
class Tree:
    """Ordered directory listing."""
    sha: str
    items: list[TreeItem] = field(default_factory=list)
    truncated: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "Tree":
        return cls(
            sha=data["sha"],
            items=[TreeItem.from_api(item) for item in data.get("tree", [])],
            truncated=bool(data.get("truncated", False)),
        )

    def find(self, path: str) -> Optional[TreeItem]:
        return next((item for item in self.items if item.path == path), None)


@dataclass
class Commit:
    """Snapshot pointing at one tree and its parent commits."""
    sha: str
    message: str
    tree_sha: str
    parent_shas: list[str] = field(default_factory=list)
    author_date: Optional[datetime] = None
    committer_date: Optional[datetime] = None

    @property
    def parent_sha(self) -> Optional[str]:
        return self.parent_shas[0] if self.parent_shas else None

    @property
    def created_at(self) -> Optional[datetime]:
        return self.committer_date or self.author_date

    @classmethod
    def from_api(cls, data: dict) -> "Commit":
        return cls(
            sha=data["sha"],
            message=data.get("message", ""),
            tree_sha=(data.get("tree") or {}).get("sha", ""),
            parent_shas=[p["sha"] for p in data.get("parents", [])],
            author_date=parse_timestamp((data.get("author") or {}).get("date")),
            committer_date=parse_timestamp((data.get("committer") or {}).get("date")),
        )


@dataclass
class Reference:
    """Named mutable pointer to a commit."""
    ref: str  # fully qualified, e.g. refs/heads/master
    sha: str
    object_type: str = "commit"

    @property
    def name(self) -> str:
        return self.ref[len("refs/"):] if self.ref.startswith("refs/") else self.ref

    @property
    def branch(self) -> Optional[str]:
        prefix = "refs/heads/"
        return self.ref[len(prefix):] if self.ref.startswith(prefix) else None

    @classmethod
    def from_api(cls, data: dict) -> "Reference":
        target = data.get("object") or {}
        return cls(ref=data["ref"], sha=target.get("sha", ""), object_type=target.get("type", "commit"))


@dataclass
class FileChange:
    """Represents a changed file in a PR."""
    filename: str
    status: str  # added, modified, removed, renamed
    additions: int
    deletions: int
    patch: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "FileChange":
        return cls(
            filename=data["filename"], status=data.get("status", "modified"),
            additions=data.get("additions", 0), deletions=data.get("deletions", 0),
            patch=data.get("patch"),
        )


@dataclass
class PullRequest:
    """Represents a GitHub Pull Request."""
    number: int
    title: str
    head_branch: str
    base_branch: str
    head_sha: str = ""
    base_sha: str = ""
    body: str = ""
    state: str = "open"
    url: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "PullRequest":
        head = data.get("head") or {}
        base = data.get("base") or {}
        return cls(
            number=data["number"], title=data.get("title", ""),
            head_branch=head.get("ref", ""), base_branch=base.get("ref", ""),
            head_sha=head.get("sha", ""), base_sha=base.get("sha", ""),
            body=data.get("body") or "", state=data.get("state", "open"),
            url=data.get("html_url", ""),
        )


@dataclass
class ReviewComment:
    """A comment anchored to a path and diff position of a pull request."""
    id: int
    body: str
    path: str
    position: Optional[int]
    commit_id: str
    created_at: datetime
    updated_at: datetime
    in_reply_to_id: Optional[int] = None
    pull_number: Optional[int] = None
    original_position: Optional[int] = None
    original_commit_id: str = ""
    diff_hunk: str = ""
    user: str = ""
    url: str = ""

    @property
    def is_reply(self) -> bool:
        return self.in_reply_to_id is not None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ReviewComment":
        created_at = parse_timestamp(data["created_at"])
        updated_at = parse_timestamp(data.get("updated_at")) or created_at
        # A snapshot never reports an update older than its creation.
        updated_at = max(updated_at, created_at)
        pull_tail = (data.get("pull_request_url") or "").rsplit("/", 1)[-1]
        pull_number = int(pull_tail) if pull_tail.isdigit() else None
        return cls(
            id=data["id"], body=data.get("body", ""), path=data.get("path", ""),
            position=data.get("position"), commit_id=data.get("commit_id", ""),
            created_at=created_at, updated_at=updated_at,
            in_reply_to_id=data.get("in_reply_to_id"), pull_number=pull_number,
            original_position=data.get("original_position"),
            original_commit_id=data.get("original_commit_id", ""),
            diff_hunk=data.get("diff_hunk", ""),
            user=(data.get("user") or {}).get("login", ""),
            url=data.get("html_url", ""),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "body": self.body,
            "path": self.path,
            "position": self.position,
            "commit_id": self.commit_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "in_reply_to_id": self.in_reply_to_id,
            "pull_number": self.pull_number,
        }


@dataclass
class DeleteResult:
    """Outcome of deleting a review comment."""
    comment_id: int
    deleted: bool
    error: Optional[NotFoundError] = None

    @property
    def ok(self) -> bool:
        return self.deleted

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error
