"""
Kubernetes service layer — one generic capability set per resource kind.

Design principles:
  - Kind-agnostic: get / list / create / delete / name_of are the only
    operations the reconciliation core needs, so every kind exposes exactly
    those and nothing else
  - Non-blocking: the kubernetes client is synchronous, each call is pushed
    onto a worker thread so the event loop keeps serving sibling branches
  - Clean error handling: ApiException, transport errors and a missing
    cluster config are translated to UpstreamApiError here, once
  - One API object per kind, built on first use
  - 404 on get means absent, 404 on delete means already gone
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from kubernetes import client, config
from kubernetes.client import ApiException
from urllib3.exceptions import HTTPError

from nifi_operator.config import settings
from nifi_operator.errors import UpstreamApiError

logger = logging.getLogger("nifi-operator.kubernetes")

_k8s_loaded = False


def _ensure_k8s():
    """Load Kubernetes config exactly once."""
    global _k8s_loaded
    if _k8s_loaded:
        return
    if settings.IN_CLUSTER:
        config.load_incluster_config()
    else:
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config(config_file=settings.KUBECONFIG or None)
    _k8s_loaded = True


def core_api() -> client.CoreV1Api:
    _ensure_k8s()
    return client.CoreV1Api()


def apps_api() -> client.AppsV1Api:
    _ensure_k8s()
    return client.AppsV1Api()


def networking_api() -> client.NetworkingV1Api:
    _ensure_k8s()
    return client.NetworkingV1Api()


_serializer = client.ApiClient()


def to_dict(obj: Any) -> dict:
    """Convert a kubernetes model object into its wire-format (camelCase) dict."""
    if isinstance(obj, dict):
        return obj
    return _serializer.sanitize_for_serialization(obj)


class ResourceKind(ABC):
    """The operations the reconciler needs for one namespaced resource kind."""

    kind: str

    @abstractmethod
    async def get(self, name: str, namespace: str) -> Optional[dict]:
        """Return the live resource, or None if it does not exist."""

    @abstractmethod
    async def list(self, namespace: str, label_selector: str) -> list[dict]:
        """Return every resource in the namespace matching the label query."""

    @abstractmethod
    async def create(self, namespace: str, body: dict) -> dict:
        """Create the resource. Raises UpstreamApiError on failure, 409 included."""

    @abstractmethod
    async def delete(self, name: str, namespace: str) -> bool:
        """Delete the resource. Returns False if it was already gone."""

    def name_of(self, resource: dict) -> str:
        return resource["metadata"]["name"]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.kind}>"


class KubeResourceKind(ResourceKind):
    """
    ResourceKind backed by the typed kubernetes client.

    The client names its methods ``{verb}_namespaced_{suffix}``, e.g.
    ``read_namespaced_config_map``, so one suffix is enough to bind all four
    operations of a kind.
    """

    def __init__(self, kind: str, api_factory: Callable[[], Any], suffix: str):
        self.kind = kind
        self._api_factory = api_factory
        self._api: Any = None
        self._suffix = suffix

    def _method(self, verb: str) -> Callable[..., Any]:
        if self._api is None:
            self._api = self._api_factory()
        return getattr(self._api, f"{verb}_namespaced_{self._suffix}")

    async def _call(self, operation: str, target: str, verb: str, **kwargs) -> Any:
        try:
            return await asyncio.to_thread(self._method(verb), **kwargs)
        except ApiException as e:
            raise UpstreamApiError(operation, self.kind, target, e.status, e.reason or str(e)) from e
        except HTTPError as e:
            raise UpstreamApiError(operation, self.kind, target, None, str(e)) from e
        except config.ConfigException as e:
            raise UpstreamApiError(operation, self.kind, target, None, f"no cluster config: {e}") from e

    async def get(self, name: str, namespace: str) -> Optional[dict]:
        try:
            obj = await self._call("get", name, "read", name=name, namespace=namespace)
        except UpstreamApiError as e:
            if e.status == 404:
                return None
            raise
        return to_dict(obj)

    async def list(self, namespace: str, label_selector: str) -> list[dict]:
        result = await self._call(
            "list", label_selector, "list", namespace=namespace, label_selector=label_selector
        )
        return [to_dict(item) for item in result.items]

    async def create(self, namespace: str, body: dict) -> dict:
        name = body.get("metadata", {}).get("name", "")
        obj = await self._call("create", name, "create", namespace=namespace, body=body)
        logger.info(f"{self.kind} {namespace}/{name} created")
        return to_dict(obj)

    async def delete(self, name: str, namespace: str) -> bool:
        try:
            await self._call(
                "delete", name, "delete",
                name=name,
                namespace=namespace,
                propagation_policy=settings.DELETE_PROPAGATION_POLICY,
            )
        except UpstreamApiError as e:
            if e.status == 404:
                logger.info(f"{self.kind} {namespace}/{name} already gone")
                return False
            raise
        logger.info(f"{self.kind} {namespace}/{name} deletion initiated")
        return True


CONFIG_MAP = KubeResourceKind("ConfigMap", core_api, "config_map")
SERVICE = KubeResourceKind("Service", core_api, "service")
STATEFUL_SET = KubeResourceKind("StatefulSet", apps_api, "stateful_set")
INGRESS = KubeResourceKind("Ingress", networking_api, "ingress")
