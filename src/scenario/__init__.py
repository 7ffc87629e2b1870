"""Pull request fixtures for exercising review comments."""

from .config import CommitSpec, ScenarioConfig, load_scenario
from .fixture import PullRequestFixture, PullRequestFixtureBuilder

__all__ = [
    "CommitSpec",
    "ScenarioConfig",
    "load_scenario",
    "PullRequestFixture",
    "PullRequestFixtureBuilder",
]
