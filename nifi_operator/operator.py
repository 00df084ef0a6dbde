"""
NiFi Operator — kopf handlers for the NiFiDeployment custom resource.

Architecture:
  NiFiDeployment CRD → kopf watches → Reconciler:
    on create  → Reconciler.on_add     → status {lastAction: add, error}
    on update  → Reconciler.on_modify  → status {lastAction: modify, error}
    on delete  → Reconciler.on_delete  → raise on failure, kopf retries

  kopf serializes handlers per object, so two events for the same
  deployment never reconcile at the same time.

  Add/modify never fail towards kopf: failures land in status.error and
  are retried on the next event. Delete failures are raised so that the
  finalizer stays until cleanup succeeds.
"""

import logging
from typing import Optional

import kopf
from pydantic import ValidationError

from nifi_operator import config, metrics
from nifi_operator.errors import MissingProperty
from nifi_operator.models import Action, DeploymentStatus, NiFiDeployment, ReplaceStatus
from nifi_operator.reconciler import Reconciler
from nifi_operator.templates import TemplateRenderer

logger = logging.getLogger("nifi-operator")

DELETE_RETRY_DELAY = 15

_reconciler: Optional[Reconciler] = None


def get_reconciler() -> Reconciler:
    """Lazy-init the reconciler (templates are read on first use)."""
    global _reconciler
    if _reconciler is None:
        _reconciler = Reconciler(TemplateRenderer.from_settings(config.settings))
    return _reconciler


def _apply_status(patch, result: Optional[ReplaceStatus]):
    if result is None:
        return
    for key, value in result.status.to_patch().items():
        patch.status[key] = value


def _rejected(body, action: Action, error: ValidationError) -> ReplaceStatus:
    """Status for a resource whose spec does not validate; nothing is reconciled."""
    metrics.RECONCILIATIONS.labels(action=action.value, result="error").inc()
    return ReplaceStatus(
        name=(body.get("metadata") or {}).get("name"),
        status=DeploymentStatus(last_action=action, error=f"Invalid spec: {error}"),
    )


# ---------------------------------------------------------------------------
# Kopf operator settings
# ---------------------------------------------------------------------------

@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **kwargs):
    settings.posting.enabled = True
    settings.persistence.finalizer = f"{config.settings.CRD_PLURAL}.{config.settings.CRD_GROUP}/finalizer"
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=config.settings.CRD_GROUP
    )
    metrics.start_metrics_server(config.settings.METRICS_PORT)
    get_reconciler()
    logger.info(
        f"NiFi Operator started (controller={config.settings.CONTROLLER_ID}, "
        f"selector={config.settings.label_selector})"
    )


# ---------------------------------------------------------------------------
# CREATE / UPDATE handlers
# ---------------------------------------------------------------------------

@kopf.on.create(config.settings.CRD_GROUP, config.settings.CRD_VERSION, config.settings.CRD_PLURAL)
async def create_deployment(body, patch, logger, **kwargs):
    """Reconcile a newly added NiFiDeployment."""
    try:
        deployment = NiFiDeployment.from_body(body)
    except ValidationError as e:
        result = _rejected(body, Action.ADD, e)
    else:
        result = await get_reconciler().on_add(deployment)
    _apply_status(patch, result)
    if result is not None and result.status.error:
        logger.warning(f"NiFiDeployment add failed: {result.status.error}")


@kopf.on.update(config.settings.CRD_GROUP, config.settings.CRD_VERSION, config.settings.CRD_PLURAL)
async def update_deployment(body, patch, logger, **kwargs):
    """Reconcile a modified NiFiDeployment."""
    try:
        deployment = NiFiDeployment.from_body(body)
    except ValidationError as e:
        result = _rejected(body, Action.MODIFY, e)
    else:
        result = await get_reconciler().on_modify(deployment)
    _apply_status(patch, result)
    if result is not None and result.status.error:
        logger.warning(f"NiFiDeployment modify failed: {result.status.error}")


# ---------------------------------------------------------------------------
# DELETE handler — cleanup with finalizer guarantee
# ---------------------------------------------------------------------------

@kopf.on.delete(config.settings.CRD_GROUP, config.settings.CRD_VERSION, config.settings.CRD_PLURAL)
async def delete_deployment(body, logger, **kwargs):
    """
    Delete every resource owned by the NiFiDeployment.

    The finalizer is released only after every delete succeeded. Only the
    identity is read, so a malformed spec cannot block cleanup.
    """
    try:
        await get_reconciler().on_delete(NiFiDeployment.from_metadata(body))
    except MissingProperty as e:
        raise kopf.PermanentError(str(e)) from e
    except Exception as e:
        logger.error(f"NiFiDeployment cleanup failed: {e}")
        raise kopf.TemporaryError(str(e), delay=DELETE_RETRY_DELAY) from e
