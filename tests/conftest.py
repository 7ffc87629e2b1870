"""Shared fixtures: an in-memory GitHub double behind PyGithub's requester interface."""

import hashlib
import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import Mock
from urllib.parse import parse_qsl, urlencode, urlsplit

import pytest
from github import GithubException, UnknownObjectException
from github.Repository import Repository

from src.github.client import GitHubClient
from src.scenario.fixture import PullRequestFixtureBuilder

REPO = "octo/demo"
API = "https://api.github.com"


def _sha(*parts: Any) -> str:
    return hashlib.sha1(json.dumps(parts, sort_keys=True, default=str).encode()).hexdigest()


def _not_found() -> UnknownObjectException:
    return UnknownObjectException(404, data={"message": "Not Found"}, headers={})


def _invalid(message: str, errors: Optional[list] = None) -> GithubException:
    data = {"message": message}
    if errors:
        data["errors"] = errors
    return GithubException(422, data=data, headers={})


class FakeGitHub:
    """Minimal stateful stand-in for the GitHub REST API of one repository.

    Timestamps have one-second resolution and only move when ``tick`` is
    called, so tests can reproduce tied ``created_at`` values on purpose.
    Listings are paged like the real API: ``per_page``/``page`` query
    parameters and a ``Link`` header pointing at the next page.
    """

    # attributes PyGithub reads from its requester
    base_url = API
    per_page = 30
    is_lazy = True
    is_not_lazy = False

    def __init__(self, repo: str = REPO, default_branch: str = "master"):
        self.prefix = f"/repos/{repo}"
        self.repo = repo
        self._path = ""
        self._link: Optional[str] = None
        self.now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.calls: list[dict] = []
        self.blobs: dict[str, dict] = {}
        self.trees: dict[str, list[dict]] = {}
        self.commits: dict[str, dict] = {}
        self.refs: dict[str, str] = {}
        self.pulls: dict[int, dict] = {}
        self.comments: dict[int, dict] = {}
        self._next_comment_id = 1001
        self._commit_counter = 0

        # auto_init
        blob = self._store_blob("# demo\n", "utf-8")
        tree = self._store_tree([{"path": "README.md", "mode": "100644", "type": "blob", "sha": blob}])
        self.refs[f"heads/{default_branch}"] = self._store_commit("Initial commit", tree, [])

        self.routes = [
            ("POST", r"/git/blobs", self._create_blob),
            ("GET", r"/git/blobs/(?P<sha>\w+)", self._get_blob),
            ("POST", r"/git/trees", self._create_tree),
            ("GET", r"/git/trees/(?P<sha>\w+)", self._get_tree),
            ("POST", r"/git/commits", self._create_commit),
            ("GET", r"/git/commits/(?P<sha>\w+)", self._get_commit),
            ("GET", r"/git/ref/(?P<name>.+)", self._get_ref),
            ("POST", r"/git/refs", self._create_ref),
            ("PATCH", r"/git/refs/(?P<name>.+)", self._update_ref),
            ("POST", r"/pulls", self._create_pull),
            ("GET", r"/pulls/comments", self._list_repo_comments),
            ("GET", r"/pulls/comments/(?P<cid>\d+)", self._get_comment),
            ("PATCH", r"/pulls/comments/(?P<cid>\d+)", self._edit_comment),
            ("DELETE", r"/pulls/comments/(?P<cid>\d+)", self._delete_comment),
            ("GET", r"/pulls/(?P<number>\d+)", self._get_pull),
            ("GET", r"/pulls/(?P<number>\d+)/files", self._list_files),
            ("GET", r"/pulls/(?P<number>\d+)/comments", self._list_pull_comments),
            ("POST", r"/pulls/(?P<number>\d+)/comments", self._create_comment),
            ("POST", r"/pulls/(?P<number>\d+)/comments/(?P<cid>\d+)/replies", self._create_reply),
        ]

    # requester interface

    def requestJsonAndCheck(self, verb, url, parameters=None, headers=None, input=None):
        # next-page links are absolute and carry their query string
        parts = urlsplit(url)
        params = dict(parse_qsl(parts.query), **(parameters or {}))
        self.calls.append({"verb": verb, "url": parts.path, "parameters": params, "input": input})
        if not parts.path.startswith(self.prefix):
            raise AssertionError(f"Unexpected GitHub call: {verb} {url}")
        self._path = parts.path
        self._link = None
        path = parts.path[len(self.prefix):]
        for route_verb, pattern, handler in self.routes:
            match = re.fullmatch(pattern, path)
            if route_verb == verb and match:
                data = handler(params, input or {}, **match.groupdict())
                return ({"link": self._link} if self._link else {}), data
        raise AssertionError(f"Unexpected GitHub call: {verb} {url}")

    def tick(self, seconds: float = 1) -> None:
        self.now += timedelta(seconds=seconds)

    def calls_to(self, verb: str, suffix: str) -> list[dict]:
        return [c for c in self.calls if c["verb"] == verb and c["url"].endswith(suffix)]

    # storage helpers

    def _stamp(self) -> str:
        return self.now.strftime("%Y-%m-%dT%H:%M:%SZ")

    def _store_blob(self, content: str, encoding: str) -> str:
        sha = _sha("blob", content, encoding)
        self.blobs[sha] = {"content": content, "encoding": encoding}
        return sha

    def _store_tree(self, entries: list[dict]) -> str:
        sha = _sha("tree", entries)
        self.trees[sha] = entries
        return sha

    def _store_commit(self, message: str, tree: str, parents: list[str]) -> str:
        self._commit_counter += 1
        sha = _sha("commit", message, tree, parents, self._commit_counter)
        self.commits[sha] = {"message": message, "tree": tree, "parents": parents, "date": self._stamp()}
        return sha

    def _commit_json(self, sha: str) -> dict:
        commit = self.commits[sha]
        return {
            "sha": sha,
            "message": commit["message"],
            "tree": {"sha": commit["tree"]},
            "parents": [{"sha": p} for p in commit["parents"]],
            "author": {"date": commit["date"]},
            "committer": {"date": commit["date"]},
        }

    def _ref_json(self, name: str) -> dict:
        return {"ref": f"refs/{name}", "object": {"sha": self.refs[name], "type": "commit"}}

    def _is_ancestor(self, ancestor: str, sha: str) -> bool:
        pending = [sha]
        while pending:
            current = pending.pop()
            if current == ancestor:
                return True
            pending.extend(self.commits.get(current, {}).get("parents", []))
        return False

    def _blob_lines(self, sha: Optional[str]) -> list[str]:
        if sha is None:
            return []
        return self.blobs[sha]["content"].splitlines()

    def _diff(self, number: int) -> list[dict]:
        pull = self.pulls[number]
        head = {e["path"]: e["sha"] for e in self.trees[self.commits[self.refs[f"heads/{pull['head']}"]]["tree"]]}
        base = {e["path"]: e["sha"] for e in self.trees[self.commits[self.refs[f"heads/{pull['base']}"]]["tree"]]}
        files = []
        for path, sha in head.items():
            if base.get(path) == sha:
                continue
            old, new = self._blob_lines(base.get(path)), self._blob_lines(sha)
            header = f"@@ -{1 if old else 0},{len(old)} +1,{len(new)} @@"
            body = [f"-{line}" for line in old] + [f"+{line}" for line in new]
            files.append({
                "filename": path,
                "status": "modified" if path in base else "added",
                "additions": len(new),
                "deletions": len(old),
                "patch": "\n".join([header] + body),
            })
        return files

    def _comment_json(self, cid: int) -> dict:
        comment = self.comments[cid]
        data = {
            "id": cid,
            "body": comment["body"],
            "path": comment["path"],
            "position": comment["position"],
            "original_position": comment["position"],
            "commit_id": comment["commit_id"],
            "original_commit_id": comment["commit_id"],
            "created_at": comment["created_at"],
            "updated_at": comment["updated_at"],
            "pull_request_url": f"{API}{self.prefix}/pulls/{comment['pull_number']}",
            "html_url": f"https://github.com/{self.repo}/pull/{comment['pull_number']}#discussion_r{cid}",
            "user": {"login": "octocat"},
            "diff_hunk": "@@ -0,0 +1 @@",
            "url": f"{API}{self.prefix}/pulls/comments/{cid}",
        }
        if comment.get("in_reply_to_id"):
            data["in_reply_to_id"] = comment["in_reply_to_id"]
        return data

    def _store_comment(self, number: int, **fields) -> dict:
        cid = self._next_comment_id
        # ids are increasing but not contiguous
        self._next_comment_id += 7
        stamp = self._stamp()
        self.comments[cid] = dict(fields, pull_number=number, created_at=stamp, updated_at=stamp)
        return self._comment_json(cid)

    def _page(self, items: list, params: dict) -> list:
        per_page = int(params.get("per_page", 30))
        page = int(params.get("page", 1))
        if page * per_page < len(items):
            query = urlencode(dict(params, per_page=per_page, page=page + 1))
            self._link = f'<{API}{self._path}?{query}>; rel="next"'
        return items[(page - 1) * per_page: page * per_page]

    # handlers

    def _create_blob(self, params, body):
        if body.get("encoding") not in ("utf-8", "base64"):
            raise _invalid("encoding must be utf-8 or base64")
        sha = self._store_blob(body["content"], body["encoding"])
        return {"sha": sha, "url": f"{API}{self.prefix}/git/blobs/{sha}"}

    def _get_blob(self, params, body, sha):
        if sha not in self.blobs:
            raise _not_found()
        blob = self.blobs[sha]
        return {"sha": sha, "content": blob["content"], "encoding": blob["encoding"], "size": len(blob["content"])}

    def _create_tree(self, params, body):
        entries = {}
        if body.get("base_tree"):
            if body["base_tree"] not in self.trees:
                raise _invalid("base_tree is not a valid tree oid")
            entries = {e["path"]: e for e in self.trees[body["base_tree"]]}
        for item in body["tree"]:
            if item["sha"] not in self.blobs and item["sha"] not in self.trees:
                raise _invalid("Invalid tree info", errors=[f"{item['sha']} is not a valid object"])
            entries[item["path"]] = dict(item)
        sha = self._store_tree(list(entries.values()))
        return {"sha": sha, "tree": self.trees[sha], "truncated": False}

    def _get_tree(self, params, body, sha):
        if sha not in self.trees:
            raise _not_found()
        return {"sha": sha, "tree": self.trees[sha], "truncated": False}

    def _create_commit(self, params, body):
        if body["tree"] not in self.trees:
            raise _invalid("Tree SHA does not exist")
        for parent in body.get("parents", []):
            if parent not in self.commits:
                raise _invalid("Parent SHA does not exist or is not a commit object")
        return self._commit_json(self._store_commit(body["message"], body["tree"], body.get("parents", [])))

    def _get_commit(self, params, body, sha):
        if sha not in self.commits:
            raise _not_found()
        return self._commit_json(sha)

    def _get_ref(self, params, body, name):
        if name not in self.refs:
            raise _not_found()
        return self._ref_json(name)

    def _create_ref(self, params, body):
        name = body["ref"][len("refs/"):]
        if name in self.refs:
            raise _invalid("Reference already exists")
        if body["sha"] not in self.commits:
            raise _invalid("Object does not exist")
        self.refs[name] = body["sha"]
        return self._ref_json(name)

    def _update_ref(self, params, body, name):
        if name not in self.refs:
            raise _invalid("Reference does not exist")
        if body["sha"] not in self.commits:
            raise _invalid("Object does not exist")
        if not body.get("force", False) and not self._is_ancestor(self.refs[name], body["sha"]):
            raise _invalid("Update is not a fast forward")
        self.refs[name] = body["sha"]
        return self._ref_json(name)

    def _create_pull(self, params, body):
        for field_name in ("head", "base"):
            if f"heads/{body[field_name]}" not in self.refs:
                raise _invalid("Validation Failed", errors=[{"field": field_name, "code": "invalid"}])
        if body["head"] == body["base"]:
            raise _invalid("Validation Failed", errors=[{"message": "No commits between base and head"}])
        number = len(self.pulls) + 1
        self.pulls[number] = {"title": body["title"], "head": body["head"], "base": body["base"],
                              "body": body.get("body")}
        return self._pull_json(number)

    def _pull_json(self, number: int) -> dict:
        pull = self.pulls[number]
        return {
            "number": number,
            "url": f"{API}{self.prefix}/pulls/{number}",
            "title": pull["title"],
            "body": pull["body"],
            "state": "open",
            "html_url": f"https://github.com/{self.repo}/pull/{number}",
            "head": {"ref": pull["head"], "sha": self.refs[f"heads/{pull['head']}"]},
            "base": {"ref": pull["base"], "sha": self.refs[f"heads/{pull['base']}"]},
        }

    def _get_pull(self, params, body, number):
        if int(number) not in self.pulls:
            raise _not_found()
        return self._pull_json(int(number))

    def _list_files(self, params, body, number):
        if int(number) not in self.pulls:
            raise _not_found()
        return self._page(self._diff(int(number)), params)

    def _create_comment(self, params, body, number):
        number = int(number)
        if number not in self.pulls:
            raise _not_found()
        if body["commit_id"] not in self.commits:
            raise _invalid("Validation Failed", errors=[{"field": "commit_id", "code": "invalid"}])
        change = next((f for f in self._diff(number) if f["filename"] == body["path"]), None)
        if change is None or not 1 <= body["position"] < len(change["patch"].split("\n")):
            raise _invalid("Validation Failed", errors=[{"message": "pull_request_review_thread.position is invalid"}])
        return self._store_comment(number, body=body["body"], path=body["path"],
                                   position=body["position"], commit_id=body["commit_id"])

    def _create_reply(self, params, body, number, cid):
        number, cid = int(number), int(cid)
        parent = self.comments.get(cid)
        if parent is None or parent["pull_number"] != number:
            raise _not_found()
        return self._store_comment(number, body=body["body"], path=parent["path"],
                                   position=parent["position"], commit_id=parent["commit_id"],
                                   in_reply_to_id=cid)

    def _get_comment(self, params, body, cid):
        if int(cid) not in self.comments:
            raise _not_found()
        return self._comment_json(int(cid))

    def _edit_comment(self, params, body, cid):
        cid = int(cid)
        if cid not in self.comments:
            raise _not_found()
        self.comments[cid]["body"] = body["body"]
        self.comments[cid]["updated_at"] = self._stamp()
        return self._comment_json(cid)

    def _delete_comment(self, params, body, cid):
        if int(cid) not in self.comments:
            raise _not_found()
        del self.comments[int(cid)]
        return None

    def _list_pull_comments(self, params, body, number):
        ids = [cid for cid, c in self.comments.items() if c["pull_number"] == int(number)]
        return self._page([self._comment_json(cid) for cid in ids], params)

    def _list_repo_comments(self, params, body):
        field_name = "updated_at" if params.get("sort") == "updated" else "created_at"
        ids = sorted(self.comments)
        if params.get("direction"):
            # Stable sort on second-resolution stamps: ties stay in id order either way.
            ids.sort(key=lambda cid: self.comments[cid][field_name], reverse=params["direction"] == "desc")
        if params.get("since"):
            since = self._parse(params["since"])
            ids = [cid for cid in ids if self._parse(self.comments[cid]["updated_at"]) >= since]
        return self._page([self._comment_json(cid) for cid in ids], params)

    @staticmethod
    def _parse(stamp: str) -> datetime:
        return datetime.strptime(stamp, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def github(fake_github) -> Mock:
    """A Github stand-in whose repositories are real lazy PyGithub objects over the fake."""
    github = Mock()
    github.requester = fake_github
    github.get_repo.side_effect = lambda name: Repository(fake_github, {}, {"url": f"/repos/{name}"}, completed=False)
    return github


@pytest.fixture
def client(github) -> GitHubClient:
    return GitHubClient(repo_name=REPO, github=github)


@pytest.fixture
def pr_fixture(client):
    """A fresh pull request per test: README on master, CONTRIBUTING.md on new-branch."""
    return PullRequestFixtureBuilder(client).build()
