"""Fixtures for the reconciliation tests: an in-memory cluster and the packaged templates."""

import asyncio
import copy
from pathlib import Path
from typing import Any, Optional

import pytest
import yaml

from nifi_operator.errors import UpstreamApiError
from nifi_operator.models import NiFiDeployment
from nifi_operator.reconciler import Reconciler, ResourceKinds
from nifi_operator.services.kubernetes_service import ResourceKind
from nifi_operator.templates import TemplateRenderer

TEMPLATE_DIR = Path(__file__).parent.parent / "nifi_operator" / "templates"
NAMESPACE = "nifi"
SELECTOR = "app.kubernetes.io/managed-by=Kubefi,release=nifi"
OWNER_LABELS = {"app.kubernetes.io/managed-by": "Kubefi", "release": "nifi"}


class FakeKind(ResourceKind):
    """In-memory ResourceKind that records every call and can be told to fail."""

    def __init__(self, kind: str):
        self.kind = kind
        self.objects: dict[tuple[str, str], dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}

    def add(self, name: str, namespace: str = NAMESPACE, labels: Optional[dict] = None, **fields: Any):
        self.objects[(namespace, name)] = {
            "metadata": {"name": name, "namespace": namespace, "labels": labels or {}},
            **fields,
        }

    def fail(self, op: str, name: str, status: int = 500):
        self.failures[(op, name)] = UpstreamApiError(op, self.kind, name, status, "boom")

    def count(self, op: str, name: Optional[str] = None) -> int:
        return sum(1 for o, n in self.calls if o == op and (name is None or n == name))

    async def _enter(self, op: str, name: str):
        self.calls.append((op, name))
        await asyncio.sleep(0)
        if (op, name) in self.failures:
            raise self.failures[(op, name)]

    async def get(self, name: str, namespace: str) -> Optional[dict]:
        await self._enter("get", name)
        return copy.deepcopy(self.objects.get((namespace, name)))

    async def list(self, namespace: str, label_selector: str) -> list[dict]:
        await self._enter("list", label_selector)
        wanted = dict(term.split("=", 1) for term in label_selector.split(","))
        return [
            copy.deepcopy(obj)
            for (ns, _), obj in self.objects.items()
            if ns == namespace
            and all((obj["metadata"].get("labels") or {}).get(k) == v for k, v in wanted.items())
        ]

    async def create(self, namespace: str, body: dict) -> dict:
        name = body["metadata"]["name"]
        await self._enter("create", name)
        if (namespace, name) in self.objects:
            raise UpstreamApiError("create", self.kind, name, 409, "AlreadyExists")
        stored = copy.deepcopy(body)
        stored["metadata"]["namespace"] = namespace
        self.objects[(namespace, name)] = stored
        return copy.deepcopy(stored)

    async def delete(self, name: str, namespace: str) -> bool:
        await self._enter("delete", name)
        return self.objects.pop((namespace, name), None) is not None


@pytest.fixture(name="values")
def values_fixture() -> dict:
    """Controller values as shipped with the package."""
    return yaml.safe_load((TEMPLATE_DIR / "values.yaml").read_text())


@pytest.fixture(name="renderer")
def renderer_fixture(values: dict) -> TemplateRenderer:
    return TemplateRenderer(str(TEMPLATE_DIR), values, "Kubefi")


@pytest.fixture(name="kinds")
def kinds_fixture() -> ResourceKinds:
    return ResourceKinds(
        config_map=FakeKind("ConfigMap"),
        stateful_set=FakeKind("StatefulSet"),
        service=FakeKind("Service"),
        ingress=FakeKind("Ingress"),
    )


@pytest.fixture(name="reconciler")
def reconciler_fixture(renderer: TemplateRenderer, kinds: ResourceKinds) -> Reconciler:
    return Reconciler(renderer, kinds, label_selector=SELECTOR)


def make_deployment(
    name: Optional[str] = "demo",
    namespace: Optional[str] = NAMESPACE,
    **spec: Any,
) -> NiFiDeployment:
    metadata = {}
    if name is not None:
        metadata["name"] = name
    if namespace is not None:
        metadata["namespace"] = namespace
    return NiFiDeployment.from_body(
        {
            "apiVersion": "kubefi.io/v1",
            "kind": "NiFiDeployment",
            "metadata": metadata,
            "spec": {"nifiReplicas": 3, "zkReplicas": 3, **spec},
        }
    )


@pytest.fixture(name="deployment")
def deployment_fixture() -> NiFiDeployment:
    return make_deployment()
