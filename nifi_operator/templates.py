"""
Manifest template renderer.

Renders the packaged Jinja2 YAML templates (or any directory pointed to by
TEMPLATE_PATH) for one NiFiDeployment. Template context is the controller
values file, overlaid with the per-resource parameters taken from the custom
resource; a parameter missing from both raises MissingTemplateParameter.

A template that renders to blank text means the feature is switched off
(e.g. ingress.enabled: false) and render() returns None.
"""

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined, UndefinedError

from nifi_operator.config import Settings, settings as default_settings
from nifi_operator.errors import MissingTemplateParameter

logger = logging.getLogger("nifi-operator.templates")


class TemplateKind(str, Enum):
    ZK_CONFIGMAP = "zk-configmap"
    NIFI_CONFIGMAP = "nifi-configmap"
    NIFI_STATEFULSET = "nifi-statefulset"
    ZK_STATEFULSET = "zk-statefulset"
    NIFI_SERVICE = "nifi-service"
    NIFI_HEADLESS_SERVICE = "nifi-headless-service"
    ZK_SERVICE = "zk-service"
    ZK_HEADLESS_SERVICE = "zk-headless-service"
    INGRESS = "ingress"


# Where a parameter falls back to in the values file when the resource omits it
_FALLBACKS: dict[str, tuple[str, ...]] = {
    "image": ("nifi", "image"),
    "zk_image": ("zookeeper", "image"),
    "storage_class": ("storageClass",),
}

# Placeholder key shipped in values.yaml
DEFAULT_SENSITIVE_PROPS_KEY = "change-me-please"

_UNDEFINED_RE = re.compile(r"'([^']+)' (?:is undefined|has no attribute '([^']+)')")


def _lookup(values: dict, path: tuple[str, ...]) -> Any:
    node: Any = values
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def _uses_default_sensitive_key(values: dict) -> bool:
    if _lookup(values, ("nifi", "sensitivePropsSecret", "name")):
        return False
    return _lookup(values, ("nifi", "sensitivePropsKey")) == DEFAULT_SENSITIVE_PROPS_KEY


def _undefined_name(e: UndefinedError) -> str:
    m = _UNDEFINED_RE.search(str(e.message or ""))
    if not m:
        return str(e.message)
    return m.group(2) or m.group(1)


class TemplateRenderer:
    """Renders manifests for one template kind at a time."""

    def __init__(self, template_path: str, values: dict, controller_id: str):
        self._values = values
        self._controller_id = controller_id
        self._env = Environment(
            loader=FileSystemLoader(template_path),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings = default_settings) -> "TemplateRenderer":
        values_path = Path(settings.VALUES_PATH)
        values = {}
        if values_path.exists():
            values = yaml.safe_load(values_path.read_text()) or {}
        else:
            logger.warning(f"Values file {values_path} not found, rendering without defaults")
        if _uses_default_sensitive_key(values):
            logger.warning(
                "nifi.sensitivePropsKey is the packaged default and is stored in plain "
                "ConfigMaps; set it or nifi.sensitivePropsSecret in the values file"
            )
        logger.info(f"Templates loaded from {settings.TEMPLATE_PATH} (values: {values_path})")
        return cls(settings.TEMPLATE_PATH, values, settings.CONTROLLER_ID)

    def _context(self, name: str, params: dict) -> dict:
        context = dict(self._values)
        for key, value in params.items():
            if value is None and key in _FALLBACKS:
                value = _lookup(self._values, _FALLBACKS[key])
                if value is None:
                    raise MissingTemplateParameter(key)
            context[key] = value
        context["name"] = name
        context["controller_id"] = self._controller_id
        return context

    def render(self, kind: TemplateKind, name: str, **params) -> Optional[str]:
        """
        Render the manifest for ``kind`` owned by deployment ``name``.

        Returns None when the template renders to nothing.
        """
        context = self._context(name, params)
        template = self._env.get_template(f"{kind.value}.yaml")
        try:
            text = template.render(**context)
        except UndefinedError as e:
            raise MissingTemplateParameter(_undefined_name(e)) from e
        if not text.strip():
            logger.debug(f"Template {kind.value} disabled for {name}")
            return None
        return text
