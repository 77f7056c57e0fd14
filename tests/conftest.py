"""Shared test fixtures and an in-memory fake of the GitHub Git Data API."""

import base64
import hashlib
import itertools
import json as jsonlib
import sys
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

import pytest
from loguru import logger

from core.models import GitHubConfig

TOKEN = "ghp_testtoken"
OWNER = "octo"
REPO = "demo"


def _sha(kind: str, payload: bytes) -> str:
    return hashlib.sha1(f"{kind} {len(payload)}\0".encode() + payload).hexdigest()


class FakeResponse:
    def __init__(self, status_code: int, body):
        self.status_code = status_code
        self._body = body
        self.text = jsonlib.dumps(body)

    def json(self):
        return self._body


class FakeGitHub:
    """Content-addressed blobs, trees and commits plus fast-forward-checked refs."""

    def __init__(self, token: str = TOKEN):
        self.token = token
        self.blobs: Dict[str, bytes] = {}
        self.trees: Dict[str, Dict[str, str]] = {}
        self.commits: Dict[str, dict] = {}
        self.refs: Dict[str, str] = {}
        self.calls: List[Tuple[str, str]] = []
        self._counter = itertools.count()
        self.prefix = f"/repos/{OWNER}/{REPO}"

    # -- direct store helpers ----------------------------------------------

    def put_blob(self, content: bytes) -> str:
        sha = _sha("blob", content)
        self.blobs[sha] = content
        return sha

    def put_tree(self, entries: Dict[str, str]) -> str:
        payload = jsonlib.dumps(sorted(entries.items())).encode()
        sha = _sha("tree", payload)
        self.trees[sha] = dict(entries)
        return sha

    def put_commit(self, message: str, tree: str, parents: List[str]) -> str:
        payload = jsonlib.dumps(
            {"message": message, "tree": tree, "parents": parents, "n": next(self._counter)}
        ).encode()
        sha = _sha("commit", payload)
        self.commits[sha] = {"message": message, "tree": tree, "parents": list(parents)}
        return sha

    def seed_branch(self, branch: str, files: Dict[str, bytes]) -> str:
        tree = self.put_tree({path: self.put_blob(content) for path, content in files.items()})
        parents = [self.refs[branch]] if branch in self.refs else []
        commit = self.put_commit("seed", tree, parents)
        self.refs[branch] = commit
        return commit

    def push_concurrent(self, branch: str, files: Dict[str, bytes]) -> str:
        """Another writer adds a commit on top of the branch."""
        base = dict(self.trees[self.commits[self.refs[branch]]["tree"]])
        base.update({path: self.put_blob(content) for path, content in files.items()})
        commit = self.put_commit("concurrent", self.put_tree(base), [self.refs[branch]])
        self.refs[branch] = commit
        return commit

    def head(self, branch: str) -> str:
        return self.refs[branch]

    def files_at(self, commit_sha: str) -> Dict[str, bytes]:
        tree = self.trees[self.commits[commit_sha]["tree"]]
        return {path: self.blobs[sha] for path, sha in tree.items()}

    def _is_ancestor(self, ancestor: str, commit: str) -> bool:
        pending = [commit]
        seen = set()
        while pending:
            current = pending.pop()
            if current == ancestor:
                return True
            if current in seen or current not in self.commits:
                continue
            seen.add(current)
            pending.extend(self.commits[current]["parents"])
        return False

    # -- HTTP surface ------------------------------------------------------

    def handle(self, method: str, url: str, headers: Optional[dict], body: Optional[dict]) -> FakeResponse:
        path = unquote(urlparse(url).path)
        self.calls.append((method, path))

        if (headers or {}).get("Authorization") != f"Bearer {self.token}":
            return FakeResponse(401, {"message": "Bad credentials"})
        if not path.startswith(self.prefix):
            return FakeResponse(404, {"message": "Not Found"})
        path = path[len(self.prefix):]

        if method == "GET" and path.startswith("/git/ref/heads/"):
            branch = path[len("/git/ref/heads/"):]
            if branch not in self.refs:
                return FakeResponse(404, {"message": "Not Found"})
            return FakeResponse(200, {
                "ref": f"refs/heads/{branch}",
                "object": {"sha": self.refs[branch], "type": "commit"},
            })

        if method == "GET" and path.startswith("/git/commits/"):
            sha = path[len("/git/commits/"):]
            if sha not in self.commits:
                return FakeResponse(404, {"message": "Not Found"})
            commit = self.commits[sha]
            return FakeResponse(200, {
                "sha": sha,
                "tree": {"sha": commit["tree"]},
                "parents": [{"sha": parent} for parent in commit["parents"]],
                "message": commit["message"],
            })

        if method == "POST" and path == "/git/blobs":
            assert body["encoding"] == "base64"
            return FakeResponse(201, {"sha": self.put_blob(base64.b64decode(body["content"]))})

        if method == "POST" and path == "/git/trees":
            base_tree = body.get("base_tree")
            if base_tree not in self.trees:
                return FakeResponse(422, {"message": "Invalid tree info"})
            entries = dict(self.trees[base_tree])
            for entry in body["tree"]:
                assert entry["mode"] == "100644" and entry["type"] == "blob"
                if entry["sha"] not in self.blobs:
                    return FakeResponse(422, {"message": "Invalid tree info"})
                entries[entry["path"]] = entry["sha"]
            return FakeResponse(201, {"sha": self.put_tree(entries)})

        if method == "POST" and path == "/git/commits":
            if body["tree"] not in self.trees:
                return FakeResponse(422, {"message": "Tree SHA does not exist"})
            return FakeResponse(201, {"sha": self.put_commit(body["message"], body["tree"], body["parents"])})

        if method == "PATCH" and path.startswith("/git/refs/heads/"):
            branch = path[len("/git/refs/heads/"):]
            if branch not in self.refs:
                return FakeResponse(422, {"message": "Reference does not exist"})
            new_sha = body["sha"]
            if not body.get("force") and not self._is_ancestor(self.refs[branch], new_sha):
                return FakeResponse(422, {"message": "Update is not a fast forward"})
            self.refs[branch] = new_sha
            return FakeResponse(200, {"ref": f"refs/heads/{branch}", "object": {"sha": new_sha}})

        return FakeResponse(404, {"message": "Not Found"})

    def session(self) -> "FakeSession":
        return FakeSession(self)

    def count(self, method: str, fragment: str) -> int:
        return sum(1 for m, p in self.calls if m == method and fragment in p)


class FakeSession:
    """Stands in for ``requests.Session`` by routing requests to a FakeGitHub."""

    def __init__(self, server: FakeGitHub):
        self.server = server

    def request(self, method, url, headers=None, json=None, timeout=None, **kwargs):
        return self.server.handle(method, url, headers, json)


@pytest.fixture
def github_config():
    return GitHubConfig(token=TOKEN, owner=OWNER, repo=REPO, branch="main")


@pytest.fixture
def fake_github():
    server = FakeGitHub()
    server.seed_branch("main", {"README.md": b"# demo\n", "docs/guide.md": b"guide\n"})
    return server


@pytest.fixture
def workdir(tmp_path):
    """A working directory with a few files to upload."""
    (tmp_path / "app.js").write_bytes(b"console.log('hi');\n")
    (tmp_path / "sub" / "dir").mkdir(parents=True)
    (tmp_path / "sub" / "dir" / "util.js").write_bytes(b"export const x = 1;\n")
    (tmp_path / "logo.bin").write_bytes(bytes(range(256)))
    return tmp_path


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger.remove()
    logger.add(sys.__stderr__, level="WARNING")
