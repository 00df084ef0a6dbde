"""
NiFiDeployment reconciler.

Add / Modify — converge the cluster in three tiers:
    1. ConfigMaps      {name}-zookeeper, {name}-config (drift-checked)
    2. StatefulSets    {name}, {name}-zookeeper
    3. Services        {name}, {name}-headless,
                       {name}-zookeeper, {name}-zookeeper-headless
       Ingress         {name}-ingress
  Branches of a tier run concurrently. A tier starts only after every branch
  of the previous tier succeeded. Nothing is rolled back on failure; the
  error ends up in status.error instead of being raised.

Delete — StatefulSets by exact name, then every Service, ConfigMap and
  Ingress carrying the ownership labels. All deletes are attempted; the
  first failure is raised to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from nifi_operator import metrics
from nifi_operator.cascade import delete_all, delete_named
from nifi_operator.concurrency import join_all, raise_first, run_all
from nifi_operator.config import settings
from nifi_operator.configmap import ConfigMapUpdater
from nifi_operator.errors import MissingProperty
from nifi_operator.models import (
    Action,
    DeploymentStatus,
    NiFiDeployment,
    ReplaceStatus,
)
from nifi_operator.services import kubernetes_service as k8s
from nifi_operator.services.kubernetes_service import ResourceKind
from nifi_operator.synchronizer import ensure
from nifi_operator.templates import TemplateKind, TemplateRenderer

logger = logging.getLogger("nifi-operator.reconciler")


@dataclass
class ResourceKinds:
    config_map: ResourceKind = field(default_factory=lambda: k8s.CONFIG_MAP)
    stateful_set: ResourceKind = field(default_factory=lambda: k8s.STATEFUL_SET)
    service: ResourceKind = field(default_factory=lambda: k8s.SERVICE)
    ingress: ResourceKind = field(default_factory=lambda: k8s.INGRESS)


def zk_statefulset_name(name: str) -> str:
    return f"{name}-zookeeper"


class Reconciler:
    def __init__(
        self,
        renderer: TemplateRenderer,
        kinds: Optional[ResourceKinds] = None,
        label_selector: str = settings.label_selector,
    ):
        self._renderer = renderer
        self._kinds = kinds or ResourceKinds()
        self._label_selector = label_selector
        self._configmaps = ConfigMapUpdater(renderer, self._kinds.config_map)

    # ------------------------------------------------------------------
    # Dispatcher entry points
    # ------------------------------------------------------------------

    async def on_add(self, d: NiFiDeployment) -> Optional[ReplaceStatus]:
        return await self.handle_action(d, Action.ADD)

    async def on_modify(self, d: NiFiDeployment) -> Optional[ReplaceStatus]:
        return await self.handle_action(d, Action.MODIFY)

    async def on_delete(self, d: NiFiDeployment):
        """Tear down every resource owned by the deployment. Raises on failure."""
        ns = self.read_namespace(d)
        name = self.read_name(d)
        logger.info(f"Deleting NiFiDeployment {ns}/{name}")

        sts_results = await delete_named(
            self._kinds.stateful_set, [name, zk_statefulset_name(name)], ns
        )
        label_results = await run_all(
            delete_all(self._kinds.service, ns, self._label_selector),
            delete_all(self._kinds.config_map, ns, self._label_selector),
            delete_all(self._kinds.ingress, ns, self._label_selector),
        )
        try:
            raise_first(sts_results + label_results, f"Deleting {ns}/{name}")
        except Exception:
            metrics.RECONCILIATIONS.labels(action=Action.DELETE.value, result="error").inc()
            raise
        metrics.RECONCILIATIONS.labels(action=Action.DELETE.value, result="success").inc()
        logger.info(f"NiFiDeployment {ns}/{name} cleanup complete")

    async def handle_action(self, d: NiFiDeployment, action: Action) -> Optional[ReplaceStatus]:
        """Run one add/modify pass; failures are reported through status.error."""
        try:
            name = self.read_name(d)
        except MissingProperty as e:
            logger.error(f"Rejecting {action.value} event: {e}")
            metrics.RECONCILIATIONS.labels(action=action.value, result="error").inc()
            return ReplaceStatus(status=DeploymentStatus(last_action=action, error=str(e)))

        error = ""
        try:
            await self.handle_event(d, name)
        except Exception as e:
            error = str(e)
            logger.error(f"NiFiDeployment {name} {action.value} failed: {e}")

        metrics.RECONCILIATIONS.labels(
            action=action.value, result="error" if error else "success"
        ).inc()
        return ReplaceStatus(name=name, status=DeploymentStatus(last_action=action, error=error))

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    async def handle_event(self, d: NiFiDeployment, name: str):
        ns = self.read_namespace(d)
        spec = d.spec
        render = self._renderer.render

        # Tier 1: ConfigMaps
        logger.info(f"[{ns}/{name}] Tier 1/3: ConfigMaps")
        replaced = await self._configmaps.sync_config_data(d, name, ns)
        if replaced:
            logger.info(f"[{ns}/{name}] NiFi ConfigMap replaced")

        # Tier 2: StatefulSets
        logger.info(f"[{ns}/{name}] Tier 2/3: StatefulSets")
        await join_all(
            ensure(
                self._kinds.stateful_set, name, name, ns,
                lambda owner: render(
                    TemplateKind.NIFI_STATEFULSET, owner,
                    replicas=spec.nifi_replicas,
                    image=spec.image,
                    storage_class=spec.storage_class,
                ),
            ),
            ensure(
                self._kinds.stateful_set, zk_statefulset_name(name), name, ns,
                lambda owner: render(
                    TemplateKind.ZK_STATEFULSET, owner,
                    replicas=spec.zk_replicas,
                    zk_image=spec.zk_image,
                    storage_class=spec.storage_class,
                ),
            ),
            context=f"StatefulSets for {ns}/{name}",
        )

        # Tier 3: Services and Ingress
        logger.info(f"[{ns}/{name}] Tier 3/3: Services and Ingress")
        network = [
            (self._kinds.service, name, TemplateKind.NIFI_SERVICE),
            (self._kinds.service, f"{name}-headless", TemplateKind.NIFI_HEADLESS_SERVICE),
            (self._kinds.service, f"{name}-zookeeper", TemplateKind.ZK_SERVICE),
            (self._kinds.service, f"{name}-zookeeper-headless", TemplateKind.ZK_HEADLESS_SERVICE),
            (self._kinds.ingress, f"{name}-ingress", TemplateKind.INGRESS),
        ]
        await join_all(
            *(
                ensure(kind, resource_name, name, ns, lambda owner, t=template: render(t, owner))
                for kind, resource_name, template in network
            ),
            context=f"Services for {ns}/{name}",
        )
        logger.info(f"[{ns}/{name}] ✓ Reconciled")

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @staticmethod
    def read_name(d: NiFiDeployment) -> str:
        if not d.metadata.name:
            raise MissingProperty("name", d.kind)
        return d.metadata.name

    @staticmethod
    def read_namespace(d: NiFiDeployment) -> str:
        if not d.metadata.namespace:
            raise MissingProperty("namespace", d.kind)
        return d.metadata.namespace
