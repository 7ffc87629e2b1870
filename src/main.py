"""Main entry point: build a pull request fixture and exercise its review comments."""

import os
import sys
import json
import logging
import argparse

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    """Run the review comment scenario against a live repository."""
    parser = argparse.ArgumentParser(
        description="Build a pull request and post review comments on it"
    )
    parser.add_argument(
        "--repo",
        type=str,
        help="Repository in owner/repo format",
    )
    parser.add_argument(
        "--create-repo",
        type=str,
        metavar="PREFIX",
        help="Create a fresh auto-initialized repository named PREFIX-<timestamp> instead",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to the scenario YAML file",
    )
    parser.add_argument(
        "--comment",
        action="append",
        dest="comments",
        help="Comment body to post (repeatable, overrides the scenario)",
    )
    parser.add_argument(
        "--direction",
        choices=["asc", "desc"],
        help="Sort direction for the repository comment listing",
    )

    args = parser.parse_args()

    token = os.environ.get("GITHUB_TOKEN")
    if not token:
        logger.error("GitHub token is required. Set GITHUB_TOKEN env var.")
        sys.exit(1)

    repo = args.repo or os.environ.get("GITHUB_REPOSITORY")
    if not repo and not args.create_repo:
        logger.error("Repository is required. Set --repo, --create-repo or GITHUB_REPOSITORY env var.")
        sys.exit(1)

    from src.github import GitHubAPIError, GitHubClient, SortDirection, make_name_with_timestamp
    from src.scenario import PullRequestFixtureBuilder, load_scenario

    scenario = load_scenario(args.config)
    if args.comments:
        scenario.comments = args.comments

    try:
        if args.create_repo:
            client = GitHubClient.create_repository(make_name_with_timestamp(args.create_repo), token=token)
        else:
            client = GitHubClient(token=token, repo_name=repo)

        fixture = PullRequestFixtureBuilder(client, scenario).build()
        logger.info(f"Opened PR #{fixture.number} at {fixture.pull_request.url}")

        created = fixture.create_comments()
        logger.info(f"Posted {len(created)} review comments")

        direction = SortDirection(args.direction) if args.direction else None
        comments = client.review_comments.list_for_repository(direction=direction)
    except GitHubAPIError as e:
        logger.error(f"GitHub API error ({type(e).__name__}, status {e.status}): {e}")
        sys.exit(1)

    print(json.dumps([c.to_dict() for c in comments], indent=2))
    sys.exit(0)


if __name__ == "__main__":
    main()
