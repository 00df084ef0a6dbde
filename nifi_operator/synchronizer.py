"""
Idempotent "create if absent" for a single resource.

A resource that already exists is returned untouched, whatever its content:
creation is idempotent, not self-healing. Only the NiFi ConfigMap gets a
second look (see configmap.py).
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import yaml

from nifi_operator.errors import ManifestParseError, UpstreamApiError
from nifi_operator.services.kubernetes_service import ResourceKind

logger = logging.getLogger("nifi-operator.sync")

# owner name -> manifest text, or None when the feature is disabled
Render = Callable[[str], Optional[str]]


@dataclass
class Ensured:
    resource: Optional[dict]
    created: bool


def parse_manifest(text: str, source: str) -> dict:
    """Parse rendered YAML into a single manifest dict."""
    try:
        manifest = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestParseError(source, str(e)) from e
    if not isinstance(manifest, dict):
        raise ManifestParseError(source, f"expected a mapping, got {type(manifest).__name__}")
    return manifest


async def get_or_create(
    kind: ResourceKind,
    resource_name: str,
    owner_name: str,
    namespace: str,
    render: Render,
) -> Ensured:
    """Fetch ``resource_name``; render and create it only if it does not exist."""
    existing = await kind.get(resource_name, namespace)
    if existing is not None:
        logger.debug(f"{kind.kind} {namespace}/{resource_name} already exists")
        return Ensured(existing, created=False)

    text = render(owner_name)
    if text is None:
        logger.info(f"{kind.kind} {namespace}/{resource_name} disabled by template — skipping")
        return Ensured(None, created=False)

    manifest = parse_manifest(text, f"{kind.kind} {resource_name}")
    try:
        created = await kind.create(namespace, manifest)
    except UpstreamApiError as e:
        if e.status == 409:
            logger.info(f"{kind.kind} {namespace}/{resource_name} already exists (409)")
            return Ensured(manifest, created=False)
        raise
    return Ensured(created, created=True)


async def ensure(
    kind: ResourceKind,
    resource_name: str,
    owner_name: str,
    namespace: str,
    render: Render,
) -> Optional[dict]:
    """Make sure ``resource_name`` exists. Returns None if the template is disabled."""
    result = await get_or_create(kind, resource_name, owner_name, namespace, render)
    return result.resource
