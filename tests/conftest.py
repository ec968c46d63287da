"""Shared fixtures: an in-memory stand-in for the GitHub git data API."""

import base64
import hashlib
import json
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

import pytest

from sitedeploy.config.parser import LayoutSettings, PublisherConfig, RepositorySettings
from sitedeploy.remote.object_store import ObjectStoreClient

REPO_PREFIX = "/repos/acme/site/"


class FakeResponse:
    """Just enough of ``requests.Response`` for the clients."""

    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        links: Optional[Dict[str, Dict[str, str]]] = None,
        reason: str = "OK",
    ):
        self.status_code = status_code
        self._payload = payload
        self.links = links or {}
        self.reason = reason
        self.text = json.dumps(payload) if payload is not None else ""

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeGitHub:
    """Session double holding blobs, trees, commits and refs of one repository.

    Every request is recorded in ``calls`` as ``(method, path)``.
    """

    def __init__(self):
        self.headers: Dict[str, str] = {}
        self.blobs: Dict[str, bytes] = {}
        self.trees: Dict[str, Dict[str, str]] = {}
        self.commits: Dict[str, Dict[str, Any]] = {}
        self.refs: Dict[str, str] = {}
        self.tags: Dict[str, str] = {}
        self.tag_objects: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.after_create_commit: Optional[Callable[[str], None]] = None
        self._failures: List[Tuple[str, str, int]] = []
        self._lock = threading.RLock()

    # -- seeding and inspection -----------------------------------------

    @staticmethod
    def _hash(kind: str, data: bytes) -> str:
        return hashlib.sha1(kind.encode("utf-8") + b"\0" + data).hexdigest()

    def put_blob(self, content: bytes) -> str:
        sha = self._hash("blob", content)
        self.blobs[sha] = content
        return sha

    def put_tree(self, files: Dict[str, str]) -> str:
        sha = self._hash("tree", json.dumps(sorted(files.items())).encode("utf-8"))
        self.trees[sha] = dict(files)
        return sha

    def put_commit(self, tree: str, parents: List[str], message: str) -> str:
        body = json.dumps([tree, parents, message, len(self.commits)]).encode("utf-8")
        sha = self._hash("commit", body)
        self.commits[sha] = {"tree": tree, "parents": list(parents), "message": message}
        return sha

    def seed(self, branch: str, files: Dict[str, Union[str, bytes]], message: str = "Seed") -> str:
        """Commit ``files`` on top of ``branch`` and move the branch."""
        parent = self.refs.get(branch)
        tree = dict(self.trees[self.commits[parent]["tree"]]) if parent else {}
        for path, content in files.items():
            if isinstance(content, str):
                content = content.encode("utf-8")
            tree[path] = self.put_blob(content)
        commit = self.put_commit(self.put_tree(tree), [parent] if parent else [], message)
        self.refs[branch] = commit
        return commit

    def files_at(self, ref: str) -> Dict[str, bytes]:
        commit = self.refs.get(ref, ref)
        tree = self.trees[self.commits[commit]["tree"]]
        return {path: self.blobs[sha] for path, sha in tree.items()}

    def history(self, ref: str) -> List[str]:
        chain = []
        sha = self.refs.get(ref, ref)
        while sha:
            chain.append(sha)
            parents = self.commits[sha]["parents"]
            sha = parents[0] if parents else None
        return chain

    def fail_next(self, method: str, path_prefix: str, status: int) -> None:
        self._failures.append((method, path_prefix, status))

    @property
    def writes(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("POST", "PATCH", "PUT", "DELETE")]

    # -- requests.Session interface -------------------------------------

    def request(self, method, url, params=None, json=None, timeout=None, **kwargs):
        path = urlparse(url).path.split(REPO_PREFIX, 1)[1]
        with self._lock:
            self.calls.append((method, path))
            for index, (fail_method, prefix, status) in enumerate(self._failures):
                if fail_method == method and path.startswith(prefix):
                    del self._failures[index]
                    return FakeResponse(status, {"message": f"Injected {status}"}, reason="Injected")
            return self._route(method, path, params or {}, json or {})

    def _route(self, method, path, params, body) -> FakeResponse:
        if method == "GET" and path.startswith("git/ref/heads/"):
            branch = path[len("git/ref/heads/"):]
            if branch not in self.refs:
                return _not_found()
            return FakeResponse(200, {"ref": f"refs/heads/{branch}", "object": {"sha": self.refs[branch]}})

        if method == "GET" and path.startswith("git/ref/tags/"):
            tag = path[len("git/ref/tags/"):]
            if tag not in self.tags:
                return _not_found()
            return FakeResponse(200, {"ref": f"refs/tags/{tag}", "object": {"sha": self.tags[tag], "type": "tag"}})

        if method == "GET" and path.startswith("git/commits/"):
            sha = path[len("git/commits/"):]
            if sha not in self.commits:
                return _not_found()
            commit = self.commits[sha]
            return FakeResponse(200, {
                "sha": sha,
                "tree": {"sha": commit["tree"]},
                "parents": [{"sha": p} for p in commit["parents"]],
                "message": commit["message"],
            })

        if method == "GET" and path.startswith("git/trees/"):
            sha = path[len("git/trees/"):]
            if sha not in self.trees:
                return _not_found()
            entries = [
                {"path": p, "mode": "100644", "type": "blob", "sha": s}
                for p, s in sorted(self.trees[sha].items())
            ]
            return FakeResponse(200, {"sha": sha, "tree": entries, "truncated": False})

        if method == "GET" and path.startswith("git/blobs/"):
            sha = path[len("git/blobs/"):]
            if sha not in self.blobs:
                return _not_found()
            content = base64.b64encode(self.blobs[sha]).decode("ascii")
            return FakeResponse(200, {"sha": sha, "content": content, "encoding": "base64"})

        if method == "POST" and path == "git/blobs":
            content = base64.b64decode(body["content"])
            return FakeResponse(201, {"sha": self.put_blob(content)})

        if method == "POST" and path == "git/trees":
            base = body.get("base_tree")
            if base not in self.trees:
                return FakeResponse(422, {"message": "Invalid base_tree"})
            files = dict(self.trees[base])
            for entry in body["tree"]:
                if entry["sha"] is None:
                    files.pop(entry["path"], None)
                elif entry["sha"] not in self.blobs:
                    return FakeResponse(422, {"message": "Invalid blob sha"})
                else:
                    files[entry["path"]] = entry["sha"]
            return FakeResponse(201, {"sha": self.put_tree(files)})

        if method == "POST" and path == "git/commits":
            if body["tree"] not in self.trees:
                return FakeResponse(422, {"message": "Invalid tree"})
            sha = self.put_commit(body["tree"], body["parents"], body["message"])
            if self.after_create_commit:
                self.after_create_commit(sha)
            return FakeResponse(201, {"sha": sha})

        if method == "POST" and path == "git/tags":
            if body["object"] not in self.commits:
                return FakeResponse(422, {"message": "Object does not exist"})
            sha = self._hash("tag", json.dumps(body, sort_keys=True).encode("utf-8"))
            self.tag_objects[sha] = dict(body)
            return FakeResponse(201, {"sha": sha, "tag": body["tag"]})

        if method == "POST" and path == "git/refs":
            ref = body["ref"]
            if not ref.startswith("refs/tags/"):
                return FakeResponse(422, {"message": "Unsupported reference"})
            name = ref[len("refs/tags/"):]
            if name in self.tags:
                return FakeResponse(422, {"message": "Reference already exists"})
            self.tags[name] = body["sha"]
            return FakeResponse(201, {"ref": ref, "object": {"sha": body["sha"]}})

        if method == "PATCH" and path.startswith("git/refs/heads/"):
            branch = path[len("git/refs/heads/"):]
            new_sha = body["sha"]
            if new_sha not in self.commits:
                return FakeResponse(422, {"message": "Object does not exist"})
            if not body.get("force") and self.refs.get(branch) not in self.history(new_sha):
                return FakeResponse(422, {"message": "Update is not a fast forward"})
            self.refs[branch] = new_sha
            return FakeResponse(200, {"object": {"sha": new_sha}})

        if method == "GET" and path == "commits":
            return self._list_commits(params)

        if method == "GET" and path.startswith("contents/"):
            return self._contents(path[len("contents/"):], params.get("ref"))

        return _not_found()

    def _list_commits(self, params) -> FakeResponse:
        branch = params.get("sha")
        if branch not in self.refs:
            return _not_found()
        chain = self.history(branch)
        per_page = int(params.get("per_page", 30))
        page = int(params.get("page", 1))
        items = [
            {
                "sha": sha,
                "html_url": f"https://github.com/acme/site/commit/{sha}",
                "commit": {
                    "message": self.commits[sha]["message"],
                    "author": {"name": "Ada", "date": "2024-05-01T10:00:00Z"},
                },
            }
            for sha in chain[(page - 1) * per_page:page * per_page]
        ]
        pages = -(-len(chain) // per_page)
        links = {}
        if pages > 1:
            links["last"] = {
                "url": f"https://api.github.com/repositories/1/commits?sha={branch}&per_page={per_page}&page={pages}",
                "rel": "last",
            }
        return FakeResponse(200, items, links=links)

    def _contents(self, path: str, ref: str) -> FakeResponse:
        if ref not in self.refs and ref not in self.commits:
            return _not_found()
        files = self.files_at(ref)
        tree = self.trees[self.commits[self.refs.get(ref, ref)]["tree"]]
        if path in files:
            return FakeResponse(200, {
                "type": "file",
                "name": path.rsplit("/", 1)[-1],
                "path": path,
                "sha": tree[path],
                "size": len(files[path]),
                "encoding": "base64",
                "content": base64.encodebytes(files[path]).decode("ascii"),
            })

        prefix = f"{path}/"
        listing: Dict[str, Dict[str, Any]] = {}
        for file_path, content in files.items():
            if not file_path.startswith(prefix):
                continue
            rest = file_path[len(prefix):]
            name = rest.split("/", 1)[0]
            if "/" in rest:
                listing.setdefault(name, {"type": "dir", "name": name, "path": prefix + name})
            else:
                listing[name] = {
                    "type": "file",
                    "name": name,
                    "path": file_path,
                    "sha": tree[file_path],
                    "size": len(content),
                }
        if not listing:
            return _not_found()
        return FakeResponse(200, list(listing.values()))


def _not_found() -> FakeResponse:
    return FakeResponse(404, {"message": "Not Found"}, reason="Not Found")


@pytest.fixture
def github():
    """Fake repository with ``main`` and ``development`` branches."""
    fake = FakeGitHub()
    fake.seed("main", {
        "README.md": "# site\n",
        "frontend/src/data/websiteData.json": "{}",
    }, message="Initial commit")
    fake.refs["development"] = fake.refs["main"]
    return fake


@pytest.fixture
def config(tmp_path):
    """Publisher configuration pointing at the fake repository."""
    return PublisherConfig(
        repository=RepositorySettings(owner="acme", name="site", token="ghp_test"),
        layout=LayoutSettings(
            working_copy=str(tmp_path / "work"),
            records_db=str(tmp_path / "records.db"),
        ),
    )


@pytest.fixture
def client(config, github):
    """Object store client over the fake repository, without retry waits."""
    return ObjectStoreClient(config, session=github, backoff_factor=0)


@pytest.fixture
def site_state():
    """A small site that passes validation."""
    return {
        "colorTheme": {"primary": "#112233", "text": "#000000", "background": "#FFFFFF"},
        "pages": [
            {
                "slug": "home",
                "name": "Home",
                "components": [
                    {"type": "auroraImageHero", "props": {"title": "Welcome", "mainColor": "#FF0000"}},
                    {"type": "textAndList", "props": {"title": "Services", "items": ["a", "b"]}},
                ],
            },
            {
                "slug": "about",
                "name": "About",
                "components": [
                    {"type": "profileCredentials", "props": {"description": "Since 1999"}},
                ],
            },
        ],
    }


@pytest.fixture
def fake_response():
    """Factory for canned HTTP responses."""
    return FakeResponse
