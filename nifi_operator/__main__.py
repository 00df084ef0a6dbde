"""
NiFi Operator — entrypoint.

Sets up logging and runs kopf with the handlers in nifi_operator.operator:
  - watches WATCH_NAMESPACE, or the whole cluster when it is empty
  - standalone (no peering CRDs required)
"""

import logging

import kopf

from nifi_operator import operator  # noqa: F401  (registers kopf handlers)
from nifi_operator.config import settings


def main():
    # --- Logging ---
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger = logging.getLogger("nifi-operator")
    namespaces = [settings.WATCH_NAMESPACE] if settings.WATCH_NAMESPACE else []
    logger.info(
        f"NiFi Operator starting (namespaces={namespaces or 'all'}, "
        f"crd={settings.CRD_PLURAL}.{settings.CRD_GROUP}/{settings.CRD_VERSION})"
    )
    kopf.run(
        standalone=True,
        clusterwide=not namespaces,
        namespaces=namespaces,
    )


if __name__ == "__main__":
    main()
