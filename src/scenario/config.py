"""Scenario settings for building a pull request fixture."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "scenario.yaml"


@dataclass
class CommitSpec:
    """One file committed on a branch."""
    branch: str
    path: str
    content: str
    message: str


@dataclass
class ScenarioConfig:
    """Everything needed to reproduce a pull request with review comments."""
    base: CommitSpec = field(default_factory=lambda: CommitSpec(
        branch="master", path="README.md",
        content="Hello World!", message="A master commit message",
    ))
    head: CommitSpec = field(default_factory=lambda: CommitSpec(
        branch="new-branch", path="CONTRIBUTING.md",
        content="Hello from the fork!", message="A branch commit message",
    ))
    title: str = "Nice title for the pull request"
    body: str = ""
    position: int = 1
    comments: list[str] = field(default_factory=lambda: ["A review comment message"])

    @classmethod
    def from_dict(cls, config: dict) -> "ScenarioConfig":
        defaults = cls()

        def commit_spec(section: Optional[dict], fallback: CommitSpec) -> CommitSpec:
            section = section or {}
            return CommitSpec(
                branch=section.get("branch", fallback.branch),
                path=section.get("path", fallback.path),
                content=section.get("content", fallback.content),
                message=section.get("message", fallback.message),
            )

        pull_request = config.get("pull_request") or {}
        comments = config.get("comments") or {}
        scenario = cls(
            base=commit_spec(config.get("base"), defaults.base),
            head=commit_spec(config.get("head"), defaults.head),
            title=pull_request.get("title", defaults.title),
            body=pull_request.get("body", defaults.body),
            position=int(comments.get("position", defaults.position)),
            comments=list(comments.get("bodies", defaults.comments)),
        )
        if scenario.base.branch == scenario.head.branch:
            raise ValueError(f"Base and head branch must differ, both are {scenario.base.branch!r}")
        return scenario


def load_scenario(config_path: Optional[str | Path] = None) -> ScenarioConfig:
    """Load a scenario from YAML, falling back to the built-in one."""
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return ScenarioConfig()

    with open(config_path) as f:
        config = yaml.safe_load(f) or {}

    scenario = ScenarioConfig.from_dict(config)
    logger.info(f"Loaded scenario from {config_path}: {scenario.head.branch} -> {scenario.base.branch}")
    return scenario
