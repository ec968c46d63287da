"""Content generators, reviewers and live-deployment waiters used by the pipeline."""

import json
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from ..exceptions import RemoteError, TransientError
from ..models.deployment import LiveDeployment, ReviewResult
from ..models.git import FileAction, FileChange
from ..remote.object_store import classify_response
from ..validation.gate import iter_pages, page_route, page_slug


class SeoGenerator(Protocol):
    def generate(self, site_state: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """Return SEO metadata keyed by page slug."""
        ...


class FileGenerator(Protocol):
    def generate(
        self, site_state: Dict[str, Any], seo: Dict[str, Dict[str, Any]]
    ) -> List[FileChange]:
        ...


class CodeReviewer(Protocol):
    def review(self, files: Sequence[FileChange]) -> ReviewResult:
        ...


class LiveDeploymentWaiter(Protocol):
    def wait_for_live(self, commit_sha: str, timeout: Optional[float] = None) -> LiveDeployment:
        ...


def _post_json(session: requests.Session, url: str, body: Dict[str, Any], timeout: float) -> Any:
    try:
        response = session.post(url, json=body, timeout=timeout)
    except requests.exceptions.Timeout as e:
        raise TransientError(None, f"Request to {url} timed out after {timeout}s") from e
    except requests.exceptions.RequestException as e:
        raise RemoteError(None, f"Request to {url} failed: {e}") from e
    if not 200 <= response.status_code < 300:
        raise classify_response(response)
    return response.json()


class PageFileGenerator:
    """Emit one JSON data file per page under the app directory."""

    def __init__(self, app_dir: str = "frontend/src/app"):
        self.app_dir = app_dir.strip("/")

    def generate(
        self, site_state: Dict[str, Any], seo: Dict[str, Dict[str, Any]]
    ) -> List[FileChange]:
        files = []
        for index, page in enumerate(iter_pages(site_state)):
            slug = page_slug(page, index)
            route = page_route(page, index)
            path = "/".join(p for p in (self.app_dir, route, "page.data.json") if p)
            document = {
                "slug": slug,
                "name": page.get("name"),
                "components": page.get("components", []),
                "metadata": seo.get(slug, {}),
            }
            files.append(FileChange(
                path=path,
                content=json.dumps(document, indent=2),
                action=FileAction.MODIFY,
            ))
        return files


class HttpSeoGenerator:
    """Request page metadata from an external SEO service."""

    def __init__(self, endpoint: str, timeout: float = 180.0, session: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def generate(self, site_state: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        data = _post_json(self.session, self.endpoint, {"websiteData": site_state}, self.timeout)
        return data.get("seoMetadata", {}) or {}


class HttpCodeReviewer:
    """Submit generated files to an external static-analysis reviewer."""

    def __init__(self, endpoint: str, timeout: float = 180.0, session: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def review(self, files: Sequence[FileChange]) -> ReviewResult:
        body = {
            "files": [
                {"path": f.path, "content": (f.content or b"").decode("utf-8", errors="replace")}
                for f in files
                if f.action != FileAction.DELETE
            ]
        }
        data = _post_json(self.session, self.endpoint, body, self.timeout)
        return ReviewResult(
            approved=bool(data.get("approved")),
            issues=data.get("issues") or [],
            suggestions=data.get("suggestions") or [],
        )
