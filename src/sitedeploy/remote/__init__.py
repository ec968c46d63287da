"""Remote API clients."""

from .deployments import DeploymentStatusClient
from .object_store import ObjectStoreClient, classify_response

__all__ = ["DeploymentStatusClient", "ObjectStoreClient", "classify_response"]
