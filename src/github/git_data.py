"""Git database endpoints: blobs, trees, commits and references."""

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from .errors import ConflictError, NotFoundError, ValidationError
from .models import Blob, BlobEncoding, Commit, Reference, Tree, TreeItem

if TYPE_CHECKING:
    from .client import GitHubClient

logger = logging.getLogger(__name__)


def normalize_ref(name: str) -> str:
    """Accept ``heads/x`` or ``refs/heads/x`` and return ``heads/x``."""
    name = name.strip("/")
    return name[len("refs/"):] if name.startswith("refs/") else name


class GitDataClient:
    """Builds commit history out of blobs, trees, commits and refs."""

    def __init__(self, client: "GitHubClient"):
        self._client = client

    def create_blob(self, content: str, encoding: str | BlobEncoding = BlobEncoding.UTF8) -> Blob:
        try:
            encoding = BlobEncoding(encoding)
        except ValueError:
            raise ValidationError(f"Unsupported blob encoding: {encoding!r}") from None

        data = self._client.request("POST", "/git/blobs", input={
            "content": content, "encoding": encoding.value,
        })
        blob = Blob(sha=data["sha"], content=content, encoding=encoding.value, url=data.get("url", ""))
        logger.info(f"Created blob {blob.sha[:7]}")
        return blob

    def get_blob(self, sha: str) -> Blob:
        return Blob.from_api(self._client.request("GET", f"/git/blobs/{sha}"))

    def create_tree(self, items: Iterable[TreeItem], base_tree: Optional[str] = None) -> Tree:
        """Create a tree from ordered entries, optionally layered over ``base_tree``."""
        items = list(items)
        if not items:
            raise ValidationError("A tree needs at least one entry")

        seen: set[str] = set()
        for item in items:
            if item.path in seen:
                raise ValidationError(f"Duplicate path in tree: {item.path}")
            seen.add(item.path)

        payload = {"tree": [item.to_api() for item in items]}
        if base_tree:
            payload["base_tree"] = base_tree

        tree = Tree.from_api(self._client.request("POST", "/git/trees", input=payload))
        logger.info(f"Created tree {tree.sha[:7]} with {len(items)} entries")
        return tree

    def get_tree(self, sha: str) -> Tree:
        return Tree.from_api(self._client.request("GET", f"/git/trees/{sha}"))

    def create_commit(self, message: str, tree_sha: str, parent_sha: Optional[str] = None) -> Commit:
        payload = {
            "message": message,
            "tree": tree_sha,
            "parents": [parent_sha] if parent_sha else [],
        }
        try:
            data = self._client.request("POST", "/git/commits", input=payload)
        except ValidationError as e:
            # GitHub reports an unknown parent as an unprocessable entity.
            if parent_sha and "parent" in e.message.lower():
                raise NotFoundError(f"Parent commit {parent_sha} not found", status=e.status, data=e.data) from e
            raise

        commit = Commit.from_api(data)
        logger.info(f"Created commit {commit.sha[:7]}: {message}")
        return commit

    def get_commit(self, sha: str) -> Commit:
        return Commit.from_api(self._client.request("GET", f"/git/commits/{sha}"))

    def get_reference(self, name: str) -> Reference:
        return Reference.from_api(self._client.request("GET", f"/git/ref/{normalize_ref(name)}"))

    def create_reference(self, name: str, sha: str) -> Reference:
        ref = Reference.from_api(self._client.request("POST", "/git/refs", input={
            "ref": f"refs/{normalize_ref(name)}", "sha": sha,
        }))
        logger.info(f"Created {ref.ref} at {sha[:7]}")
        return ref

    def update_reference(self, name: str, sha: str, force: bool = True) -> Reference:
        """Move a reference to ``sha``.

        With ``force=False`` only fast-forward moves are accepted and any
        other move raises ``ConflictError``.
        """
        name = normalize_ref(name)
        try:
            data = self._client.request("PATCH", f"/git/refs/{name}", input={"sha": sha, "force": force})
        except ValidationError as e:
            if not force and "fast forward" in e.message.lower():
                raise ConflictError(f"Update of {name} to {sha[:7]} is not a fast forward",
                                    status=e.status, data=e.data) from e
            raise

        ref = Reference.from_api(data)
        logger.info(f"Updated {ref.ref} to {sha[:7]}")
        return ref

    def commit_file(
        self,
        branch: str,
        path: str,
        content: str,
        message: str,
        encoding: str | BlobEncoding = BlobEncoding.UTF8,
    ) -> Commit:
        """Commit a single file on top of a branch and move the branch to it."""
        ref_name = branch if normalize_ref(branch).startswith("heads/") else f"heads/{branch}"
        head = self.get_reference(ref_name)
        parent = self.get_commit(head.sha)

        blob = self.create_blob(content, encoding)
        tree = self.create_tree([TreeItem(path=path, sha=blob.sha)], base_tree=parent.tree_sha)
        commit = self.create_commit(message, tree.sha, parent.sha)
        self.update_reference(ref_name, commit.sha)
        return commit
