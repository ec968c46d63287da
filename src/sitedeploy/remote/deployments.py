"""Deployment-status polling against the hosting provider."""

import time
from typing import Any, Callable, Dict, Optional

import requests

from ..config.parser import PublisherConfig
from ..exceptions import AuthError, ConfigurationError, RemoteError
from ..logging import get_logger
from ..models.deployment import LiveDeployment
from .object_store import classify_response

logger = get_logger(__name__)

READY_STATES = ("READY",)
FAILED_STATES = ("ERROR", "CANCELED")


class DeploymentStatusClient:
    """Polls the provider until the deployment of a commit reaches a terminal state."""

    def __init__(
        self,
        config: PublisherConfig,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        deployment = config.deployment
        if not deployment.project_id:
            raise ConfigurationError("PROJECT_ID is not configured")
        if not deployment.token:
            raise ConfigurationError("DEPLOYMENT_TOKEN is not configured")

        self.project_id = deployment.project_id
        self.api_url = deployment.api_url.rstrip("/")
        self.poll_interval = deployment.poll_interval
        self.default_timeout = deployment.live_timeout
        self.request_timeout = config.repository.timeout
        self._sleep = sleep
        self._clock = clock

        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {deployment.token}",
            "Accept": "application/json",
        })

    def _find_deployment(self, commit_sha: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.session.get(
                f"{self.api_url}/v6/deployments",
                params={"projectId": self.project_id, "limit": 20},
                timeout=self.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RemoteError(None, f"Deployment status request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise classify_response(response)

        for deployment in response.json().get("deployments", []):
            meta = deployment.get("meta") or {}
            if meta.get("githubCommitSha") == commit_sha:
                return deployment
        return None

    def wait_for_live(self, commit_sha: str, timeout: Optional[float] = None) -> LiveDeployment:
        """Wait for the deployment built from ``commit_sha``.

        Returns a failed ``LiveDeployment`` on provider error, cancellation or
        timeout instead of raising, since the commit is already published.
        """
        timeout = self.default_timeout if timeout is None else timeout
        start = self._clock()
        logger.info("live_wait_started", commit_sha=commit_sha, project_id=self.project_id)

        while self._clock() - start < timeout:
            try:
                deployment = self._find_deployment(commit_sha)
            except AuthError as e:
                return LiveDeployment(success=False, error=str(e))
            except RemoteError as e:
                logger.warning("live_wait_poll_failed", error=str(e))
                deployment = None

            if deployment:
                state = deployment.get("readyState") or deployment.get("state")
                deployment_id = deployment.get("uid") or deployment.get("id")
                url = deployment.get("url")
                if url and not url.startswith("http"):
                    url = f"https://{url}"

                if state in READY_STATES:
                    logger.info("live_wait_ready", deployment_id=deployment_id, url=url)
                    return LiveDeployment(success=True, url=url, deployment_id=deployment_id)
                if state in FAILED_STATES:
                    return LiveDeployment(
                        success=False,
                        url=url,
                        deployment_id=deployment_id,
                        error=f"Deployment {state.lower()}",
                    )

            self._sleep(self.poll_interval)

        return LiveDeployment(success=False, error=f"Deployment timeout after {timeout:.0f}s")
