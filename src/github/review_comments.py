"""Pull request review comment endpoints."""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from src.analysis.diff_parser import DiffParser

from .clock import MonotonicClock
from .errors import NotFoundError, ValidationError
from .models import CommentSort, DeleteResult, ReviewComment, SortDirection
from .pulls import PullRequestClient

if TYPE_CHECKING:
    from .client import GitHubClient

logger = logging.getLogger(__name__)


def _sort_key(sort: CommentSort):
    # Ties on the coarse server timestamps fall back to the id, which GitHub
    # assigns in creation order.
    if sort == CommentSort.UPDATED:
        return lambda c: (c.updated_at, c.id)
    return lambda c: (c.created_at, c.id)


class ReviewCommentClient:
    """Create, edit, delete, reply to and list review comments."""

    def __init__(
        self,
        client: "GitHubClient",
        pulls: PullRequestClient,
        clock: Optional[MonotonicClock] = None,
        diff_parser: Optional[DiffParser] = None,
        validate_positions: bool = True,
    ):
        self._client = client
        self._pulls = pulls
        self.clock = clock or MonotonicClock()
        self.diff_parser = diff_parser or DiffParser()
        self.validate_positions = validate_positions

    def _check_position(self, pull_number: int, path: str, position: int) -> None:
        if position < 1:
            raise ValidationError(f"Position must be positive, got {position}")

        change = next((f for f in self._pulls.list_files(pull_number) if f.filename == path), None)
        if change is None:
            raise ValidationError(f"{path} is not part of the diff of PR #{pull_number}")

        parsed = self.diff_parser.parse_file_diff(change)
        if parsed is None:
            logger.debug(f"No patch for {path} on PR #{pull_number}, leaving position check to GitHub")
            return
        if not parsed.has_position(position):
            raise ValidationError(
                f"Position {position} is outside the diff of {path} "
                f"(1..{parsed.position_count}) on PR #{pull_number}"
            )

    def create(
        self, pull_number: int, body: str, commit_id: str, path: str, position: int,
    ) -> ReviewComment:
        """Comment on ``path`` at diff ``position`` of ``commit_id``."""
        if self.validate_positions:
            self._check_position(pull_number, path, position)

        data = self._client.request("POST", f"/pulls/{pull_number}/comments", input={
            "body": body, "commit_id": commit_id, "path": path, "position": position,
        })
        comment = ReviewComment.from_api(data)
        comment.updated_at = comment.created_at
        if comment.pull_number is None:
            comment.pull_number = pull_number
        logger.info(f"Created review comment {comment.id} on PR #{pull_number} at {path}:{position}")
        return comment

    def _snapshot(self, data: dict) -> ReviewComment:
        # Reads must not fall behind an edit stamped earlier in this session.
        comment = ReviewComment.from_api(data)
        comment.updated_at = self.clock.observe(comment.id, comment.updated_at)
        return comment

    def get(self, comment_id: int) -> ReviewComment:
        return self._snapshot(self._client.request("GET", f"/pulls/comments/{comment_id}"))

    def edit(self, comment_id: int, body: str) -> ReviewComment:
        """Replace a comment's body and return the new snapshot.

        The snapshot's ``updated_at`` is always later than its ``created_at``
        and than any snapshot previously returned for the same comment.
        """
        data = self._client.request("PATCH", f"/pulls/comments/{comment_id}", input={"body": body})
        comment = ReviewComment.from_api(data)
        comment.updated_at = self.clock.stamp(comment.id, observed=comment.updated_at, after=comment.created_at)
        logger.info(f"Edited review comment {comment.id}")
        return comment

    def delete(self, comment_id: int) -> DeleteResult:
        """Delete a comment; a missing comment is reported in the result."""
        try:
            self._client.request("DELETE", f"/pulls/comments/{comment_id}")
        except NotFoundError as e:
            logger.warning(f"Review comment {comment_id} not found, nothing deleted")
            return DeleteResult(comment_id=comment_id, deleted=False, error=e)

        self.clock.forget(comment_id)
        logger.info(f"Deleted review comment {comment_id}")
        return DeleteResult(comment_id=comment_id, deleted=True)

    def reply(self, pull_number: int, body: str, in_reply_to: int) -> ReviewComment:
        """Reply to an existing comment of the same pull request."""
        try:
            parent = self.get(in_reply_to)
        except NotFoundError as e:
            raise ValidationError(f"Cannot reply to unknown comment {in_reply_to}",
                                  status=e.status, data=e.data) from e
        if parent.pull_number is not None and parent.pull_number != pull_number:
            raise ValidationError(
                f"Comment {in_reply_to} belongs to PR #{parent.pull_number}, not PR #{pull_number}"
            )

        data = self._client.request(
            "POST", f"/pulls/{pull_number}/comments/{in_reply_to}/replies", input={"body": body},
        )
        reply = ReviewComment.from_api(data)
        reply.updated_at = reply.created_at
        if reply.pull_number is None:
            reply.pull_number = pull_number
        if reply.in_reply_to_id is None:
            reply.in_reply_to_id = in_reply_to
        logger.info(f"Replied to review comment {in_reply_to} with {reply.id}")
        return reply

    def list_for_pull_request(self, pull_number: int) -> list[ReviewComment]:
        """All comments of one pull request in creation order."""
        comments = self._client.fetch_all(
            lambda repo: repo.get_pull(pull_number).get_review_comments(),
            lambda c: self._snapshot(c.raw_data),
        )
        comments.sort(key=_sort_key(CommentSort.CREATED))
        logger.info(f"Fetched {len(comments)} review comments for PR #{pull_number}")
        return comments

    def list_for_repository(
        self,
        direction: Optional[SortDirection] = None,
        sort: Optional[CommentSort] = None,
        since: Optional[datetime] = None,
    ) -> list[ReviewComment]:
        """All review comments of the repository.

        With a ``direction`` the result is ordered by the ``sort`` timestamp
        (creation by default) and then by id, so descending is the exact
        reverse of ascending. Without one, GitHub's default order is kept.
        """
        params = {}
        if sort is not None:
            sort = CommentSort(sort)
            params["sort"] = sort.value
        if direction is not None:
            direction = SortDirection(direction)
            params["direction"] = direction.value
        if since is not None:
            # PyGithub formats since as a UTC wall-clock time
            params["since"] = since.astimezone(timezone.utc) if since.tzinfo else since

        comments = self._client.fetch_all(
            lambda repo: repo.get_pulls_review_comments(**params),
            lambda c: self._snapshot(c.raw_data),
        )
        if direction is not None:
            comments.sort(key=_sort_key(sort or CommentSort.CREATED), reverse=direction == SortDirection.DESCENDING)
        logger.info(f"Fetched {len(comments)} review comments for {self._client.repo_name}")
        return comments
