"""
Label-driven cascade deletion.

Owned resources are discovered by label query, not by a stored list of
names. Every matching resource gets its own delete call; all calls run to
completion even when some of them fail.
"""

import logging

from nifi_operator import metrics
from nifi_operator.concurrency import raise_first, run_all
from nifi_operator.services.kubernetes_service import ResourceKind

logger = logging.getLogger("nifi-operator.cascade")


async def _delete_one(kind: ResourceKind, name: str, namespace: str):
    try:
        deleted = await kind.delete(name, namespace)
    except Exception:
        metrics.CASCADE_DELETES.labels(kind=kind.kind, result="error").inc()
        raise
    metrics.CASCADE_DELETES.labels(
        kind=kind.kind, result="deleted" if deleted else "absent"
    ).inc()


async def delete_named(kind: ResourceKind, names: list[str], namespace: str) -> list:
    """Delete each name concurrently; returns every outcome without raising."""
    return await run_all(*(_delete_one(kind, n, namespace) for n in names))


async def delete_all(kind: ResourceKind, namespace: str, label_selector: str):
    """Delete every ``kind`` resource in ``namespace`` matching ``label_selector``."""
    resources = await kind.list(namespace, label_selector)
    names = [kind.name_of(r) for r in resources]
    logger.info(f"{kind.kind} resources to delete in {namespace}: {names}")
    results = await delete_named(kind, names, namespace)
    raise_first(results, f"Deleting {kind.kind} in {namespace}")
