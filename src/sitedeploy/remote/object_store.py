"""Typed client over the remote repository's git object endpoints."""

import base64
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config.parser import PublisherConfig
from ..exceptions import (
    AuthError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    RemoteError,
    TransientError,
)
from ..logging import get_logger
from ..models.git import CommitInfo, CommitSummary, TreeEntry

logger = get_logger(__name__)


def classify_response(response: requests.Response) -> RemoteError:
    """Map a non-2xx response onto the error taxonomy."""
    try:
        payload = response.json()
        message = payload.get("message") if isinstance(payload, dict) else None
    except ValueError:
        message = None
    message = message or response.text or response.reason or "Unknown error"
    status = response.status_code

    if status in (401, 403):
        return AuthError(status, message)
    if status == 404:
        return NotFoundError(message, status)
    if status >= 500:
        return TransientError(status, message)
    return RemoteError(status, message)


class ObjectStoreClient:
    """Blob, tree, commit and ref operations over the GitHub git data API.

    Reads are idempotent. Writes are not, but every object they create is
    content-addressed or unreferenced until ``update_ref`` runs, so retrying
    a transient failure is safe.
    """

    def __init__(
        self,
        config: PublisherConfig,
        session: Optional[requests.Session] = None,
        backoff_factor: float = 1.0,
    ):
        """Initialize the client.

        Args:
            config: Publisher configuration
            session: Optional pre-built HTTP session
            backoff_factor: Multiplier for the exponential retry wait

        Raises:
            ConfigurationError: If the token or repository identifiers are missing
        """
        repo = config.repository
        if not repo.token:
            raise ConfigurationError("GITHUB_TOKEN is not configured")
        if not repo.owner or not repo.name:
            raise ConfigurationError("REPO_OWNER and REPO_NAME must be configured")

        self.owner = repo.owner
        self.name = repo.name
        self.api_url = repo.api_url.rstrip("/")
        self.base_url = f"{self.api_url}/repos/{repo.owner}/{repo.name}"
        self.timeout = repo.timeout
        self.max_attempts = repo.max_attempts
        self.backoff_factor = backoff_factor

        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {repo.token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "sitedeploy/0.1.0",
        })

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        kwargs.setdefault("timeout", self.timeout)

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.Timeout as e:
            raise TransientError(None, f"Request timed out after {self.timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            raise TransientError(None, f"Failed to connect to {self.api_url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise RemoteError(None, f"Request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise classify_response(response)
        return response

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Send a request, retrying transient failures with bounded backoff."""
        retryer = Retrying(
            retry=retry_if_exception_type(TransientError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_factor, max=30),
            before_sleep=lambda state: logger.warning(
                "remote_request_retry",
                method=method,
                path=path,
                attempt=state.attempt_number,
                error=str(state.outcome.exception()),
            ),
            reraise=True,
        )
        return retryer(self._send, method, path, **kwargs)

    def _json(self, method: str, path: str, **kwargs) -> Any:
        return self._request(method, path, **kwargs).json()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_ref(self, branch: str) -> str:
        """Return the commit SHA a branch points to.

        Raises:
            NotFoundError: If the branch does not exist
        """
        try:
            data = self._json("GET", f"git/ref/heads/{branch}")
        except NotFoundError as e:
            raise NotFoundError(f"Branch '{branch}' not found") from e
        return data["object"]["sha"]

    def get_commit(self, sha: str) -> CommitInfo:
        data = self._json("GET", f"git/commits/{sha}")
        return CommitInfo(
            sha=data.get("sha", sha),
            tree_sha=data["tree"]["sha"],
            parents=[p["sha"] for p in data.get("parents", [])],
            message=data.get("message"),
        )

    def get_tree(self, sha: str, recursive: bool = True) -> List[Dict[str, Any]]:
        params = {"recursive": "1"} if recursive else None
        data = self._json("GET", f"git/trees/{sha}", params=params)
        if data.get("truncated"):
            logger.warning("tree_listing_truncated", tree_sha=sha)
        return data.get("tree", [])

    def get_blob(self, sha: str) -> bytes:
        data = self._json("GET", f"git/blobs/{sha}")
        if data.get("encoding") == "base64":
            return base64.b64decode(data.get("content", ""))
        return data.get("content", "").encode("utf-8")

    def get_contents(self, path: str, ref: str) -> Any:
        """Return a directory listing (list) or a file payload (dict)."""
        return self._json("GET", f"contents/{path.strip('/')}", params={"ref": ref})

    def list_commits(self, branch: str, per_page: int = 100, page: int = 1) -> List[CommitSummary]:
        data = self._json(
            "GET", "commits", params={"sha": branch, "per_page": per_page, "page": page}
        )
        commits = []
        for item in data:
            commit = item.get("commit", {})
            author = commit.get("author") or {}
            commits.append(CommitSummary(
                sha=item["sha"],
                message=commit.get("message", ""),
                author=author.get("name"),
                date=author.get("date"),
                url=item.get("html_url"),
            ))
        return commits

    def count_commits(self, branch: str) -> int:
        """Count commits reachable from the branch head.

        Requests one commit per page and reads the page number of the
        ``rel="last"`` pagination link.
        """
        response = self._request("GET", "commits", params={"sha": branch, "per_page": 1})
        last = (response.links or {}).get("last")
        if last and last.get("url"):
            page = parse_qs(urlparse(last["url"]).query).get("page")
            if page:
                return int(page[0])
        return len(response.json())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_blob(self, content: bytes) -> str:
        data = self._json(
            "POST",
            "git/blobs",
            json={"content": base64.b64encode(content).decode("ascii"), "encoding": "base64"},
        )
        return data["sha"]

    def create_tree(self, base_tree_sha: str, entries: List[TreeEntry]) -> str:
        data = self._json(
            "POST",
            "git/trees",
            json={"base_tree": base_tree_sha, "tree": [e.model_dump() for e in entries]},
        )
        return data["sha"]

    def create_commit(self, tree_sha: str, parents: List[str], message: str) -> str:
        data = self._json(
            "POST",
            "git/commits",
            json={"message": message, "tree": tree_sha, "parents": parents},
        )
        return data["sha"]

    def update_ref(self, branch: str, new_sha: str, expected_old_sha: str) -> None:
        """Move a branch only if it still points at ``expected_old_sha``.

        The API has no native compare-and-swap, so the ref is re-read right
        before the update and ``force`` is disabled so that a non-fast-forward
        update is rejected by the server as well.

        Raises:
            ConflictError: If the branch no longer points at ``expected_old_sha``
        """
        current = self.get_ref(branch)
        if current != expected_old_sha:
            raise ConflictError(branch, expected_old_sha, current)

        try:
            self._request(
                "PATCH", f"git/refs/heads/{branch}", json={"sha": new_sha, "force": False}
            )
        except RemoteError as e:
            if e.status_code == 422:
                raise ConflictError(branch, expected_old_sha, None) from e
            raise
        logger.info("ref_updated", branch=branch, old_sha=expected_old_sha, new_sha=new_sha)

    def tag_exists(self, tag: str) -> bool:
        try:
            self._request("GET", f"git/ref/tags/{tag}")
        except NotFoundError:
            return False
        return True

    def create_tag(self, tag: str, message: str, object_sha: str) -> str:
        """Create an annotated tag object pointing at a commit. Returns the tag object SHA."""
        data = self._json(
            "POST",
            "git/tags",
            json={"tag": tag, "message": message, "object": object_sha, "type": "commit"},
        )
        return data["sha"]

    def create_ref(self, ref: str, sha: str) -> None:
        """Create a new reference such as ``refs/tags/<name>``.

        Raises:
            RemoteError: With status 422 if the reference already exists
        """
        self._request("POST", "git/refs", json={"ref": ref, "sha": sha})
        logger.info("ref_created", ref=ref, sha=sha)

    def commit_url(self, sha: str) -> str:
        return f"https://github.com/{self.owner}/{self.name}/commit/{sha}"

    def tag_url(self, tag: str) -> str:
        return f"https://github.com/{self.owner}/{self.name}/releases/tag/{tag}"
