"""LangGraph workflow that builds a pull request ready for review comments."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Optional, TypedDict

from langgraph.graph import StateGraph, END

from src.github.client import GitHubClient
from src.github.errors import GitHubAPIError
from src.github.models import Commit, PullRequest, Reference, ReviewComment
from src.scenario.config import ScenarioConfig

logger = logging.getLogger(__name__)


class FixtureState(TypedDict):
    """State for the fixture workflow."""
    base_commit: Commit | None
    branch: Reference | None
    head_commit: Commit | None
    pull_request: PullRequest | None
    error: GitHubAPIError | None
    logs: list[dict]


def add_log(event: str, **kwargs) -> dict:
    return {"timestamp": datetime.now(timezone.utc).isoformat(), "event": event, **kwargs}


@dataclass
class PullRequestFixture:
    """A pull request built for one caller, plus what it was built from."""
    client: GitHubClient
    config: ScenarioConfig
    pull_request: PullRequest
    base_commit: Commit
    head_commit: Commit
    branch: Reference
    logs: list[dict] = field(default_factory=list)

    @property
    def number(self) -> int:
        return self.pull_request.number

    @property
    def head_sha(self) -> str:
        return self.head_commit.sha

    def create_comment(self, body: str, position: Optional[int] = None) -> ReviewComment:
        """Comment on the head commit's file at ``position``."""
        return self.client.review_comments.create(
            self.number, body, self.head_sha, self.config.head.path,
            self.config.position if position is None else position,
        )

    def create_comments(self, bodies: Optional[list[str]] = None,
                        position: Optional[int] = None) -> list[ReviewComment]:
        """Create comments one after another, in order."""
        bodies = self.config.comments if bodies is None else bodies
        return [self.create_comment(body, position) for body in bodies]


class PullRequestFixtureBuilder:
    """Commits on a base branch, forks a branch, commits on it and opens a PR.

    Objects created before a failure are left in place.
    """

    def __init__(self, client: GitHubClient, config: Optional[ScenarioConfig] = None):
        self.client = client
        self.config = config or ScenarioConfig()
        self.graph = self._build_graph()
        self.app = self.graph.compile()

    def _build_graph(self) -> StateGraph:
        graph = StateGraph(FixtureState)

        graph.add_node("commit_base", self._commit_base)
        graph.add_node("create_branch", self._create_branch)
        graph.add_node("commit_head", self._commit_head)
        graph.add_node("open_pull_request", self._open_pull_request)

        graph.set_entry_point("commit_base")
        graph.add_conditional_edges("commit_base", self._next_step,
            {"continue": "create_branch", "abort": END})
        graph.add_conditional_edges("create_branch", self._next_step,
            {"continue": "commit_head", "abort": END})
        graph.add_conditional_edges("commit_head", self._next_step,
            {"continue": "open_pull_request", "abort": END})
        graph.add_edge("open_pull_request", END)

        return graph

    @staticmethod
    def _next_step(state: FixtureState) -> Literal["continue", "abort"]:
        return "abort" if state.get("error") else "continue"

    def _failed(self, state: FixtureState, step: str, error: GitHubAPIError) -> dict:
        logs = state.get("logs", [])
        logs.append(add_log("error", step=step, message=str(error)))
        logger.error(f"Fixture step {step} failed: {error}")
        return {"error": error, "logs": logs}

    def _commit_base(self, state: FixtureState) -> dict:
        base = self.config.base
        logs = state.get("logs", [])
        try:
            commit = self.client.git_data.commit_file(base.branch, base.path, base.content, base.message)
        except GitHubAPIError as e:
            return self._failed(state, "commit_base", e)
        logs.append(add_log("commit_created", branch=base.branch, sha=commit.sha[:7]))
        return {"base_commit": commit, "logs": logs}

    def _create_branch(self, state: FixtureState) -> dict:
        head = self.config.head
        logs = state.get("logs", [])
        try:
            branch = self.client.git_data.create_reference(f"heads/{head.branch}", state["base_commit"].sha)
        except GitHubAPIError as e:
            return self._failed(state, "create_branch", e)
        logs.append(add_log("branch_created", ref=branch.ref))
        return {"branch": branch, "logs": logs}

    def _commit_head(self, state: FixtureState) -> dict:
        head = self.config.head
        logs = state.get("logs", [])
        try:
            commit = self.client.git_data.commit_file(head.branch, head.path, head.content, head.message)
        except GitHubAPIError as e:
            return self._failed(state, "commit_head", e)
        logs.append(add_log("commit_created", branch=head.branch, sha=commit.sha[:7]))
        return {"head_commit": commit, "logs": logs}

    def _open_pull_request(self, state: FixtureState) -> dict:
        logs = state.get("logs", [])
        try:
            pr = self.client.pulls.create(
                self.config.title, self.config.head.branch, self.config.base.branch,
                body=self.config.body or None,
            )
        except GitHubAPIError as e:
            return self._failed(state, "open_pull_request", e)
        logs.append(add_log("pull_request_opened", number=pr.number))
        return {"pull_request": pr, "logs": logs}

    def build(self) -> PullRequestFixture:
        """Run the workflow and return the fixture, or raise the first API error."""
        initial_state: FixtureState = {
            "base_commit": None, "branch": None, "head_commit": None,
            "pull_request": None, "error": None, "logs": [],
        }
        final_state = self.app.invoke(initial_state)

        if final_state.get("error"):
            raise final_state["error"]

        logger.info(f"Built fixture PR #{final_state['pull_request'].number} in {self.client.repo_name}")
        return PullRequestFixture(
            client=self.client,
            config=self.config,
            pull_request=final_state["pull_request"],
            base_commit=final_state["base_commit"],
            head_commit=final_state["head_commit"],
            branch=final_state["branch"],
            logs=final_state["logs"],
        )
