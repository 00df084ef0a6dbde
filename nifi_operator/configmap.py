"""
ConfigMap handling with drift repair for the NiFi config.

The ZooKeeper ConfigMap is create-once. The NiFi ConfigMap is re-rendered
from the current spec on every add/modify; when its data differs from the
live object it is deleted and created again. NiFi consumes it through
envFrom/volumes, which only pick up a replaced object, so there is no
in-place patch.
"""

import logging
from typing import Optional

from nifi_operator import metrics
from nifi_operator.concurrency import join_all
from nifi_operator.models import NiFiDeployment
from nifi_operator.services.kubernetes_service import ResourceKind
from nifi_operator.synchronizer import ensure, get_or_create, parse_manifest
from nifi_operator.templates import TemplateKind, TemplateRenderer

logger = logging.getLogger("nifi-operator.configmap")


def zk_configmap_name(name: str) -> str:
    return f"{name}-zookeeper"


def nifi_configmap_name(name: str) -> str:
    return f"{name}-config"


class ConfigMapUpdater:
    """Ensures both ConfigMaps of a deployment and keeps the NiFi one in sync."""

    def __init__(self, renderer: TemplateRenderer, config_maps: ResourceKind):
        self._renderer = renderer
        self._config_maps = config_maps

    def _render_nifi(self, d: NiFiDeployment, owner: str) -> Optional[str]:
        return self._renderer.render(TemplateKind.NIFI_CONFIGMAP, owner, ldap=d.spec.ldap)

    async def sync_config_data(self, d: NiFiDeployment, name: str, namespace: str) -> bool:
        """
        Ensure the ZooKeeper and NiFi ConfigMaps exist, then repair drift in
        the NiFi one.

        Returns True if the NiFi ConfigMap was replaced.
        """
        nifi_cm_name = nifi_configmap_name(name)
        _, nifi_cm = await join_all(
            ensure(
                self._config_maps, zk_configmap_name(name), name, namespace,
                lambda owner: self._renderer.render(TemplateKind.ZK_CONFIGMAP, owner),
            ),
            get_or_create(
                self._config_maps, nifi_cm_name, name, namespace,
                lambda owner: self._render_nifi(d, owner),
            ),
            context=f"ConfigMaps for {namespace}/{name}",
        )
        if nifi_cm.created or nifi_cm.resource is None:
            return False
        return await self._handle_update(d, name, namespace, nifi_cm.resource)

    async def _handle_update(
        self, d: NiFiDeployment, name: str, namespace: str, current: dict
    ) -> bool:
        cm_name = nifi_configmap_name(name)
        text = self._render_nifi(d, name)
        if text is None:
            return False
        expected = parse_manifest(text, f"ConfigMap {cm_name}")
        if (current.get("data") or {}) == (expected.get("data") or {}):
            return False

        logger.info(f"ConfigMap {namespace}/{cm_name} drifted from spec — replacing")
        await self._config_maps.delete(cm_name, namespace)
        await self._config_maps.create(namespace, expected)
        metrics.CONFIGMAP_REPLACEMENTS.inc()
        return True
