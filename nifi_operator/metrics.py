"""
Prometheus metrics for the operator.

Exposed over HTTP by start_metrics_server() when METRICS_PORT is set.
"""

import logging

from prometheus_client import Counter, start_http_server

logger = logging.getLogger("nifi-operator.metrics")

RECONCILIATIONS = Counter(
    "nifi_operator_reconciliations_total",
    "NiFiDeployment events handled",
    ["action", "result"],
)
CONFIGMAP_REPLACEMENTS = Counter(
    "nifi_operator_configmap_replacements_total",
    "NiFi ConfigMaps deleted and recreated after drift",
)
CASCADE_DELETES = Counter(
    "nifi_operator_cascade_deletes_total",
    "Resources deleted while tearing down a NiFiDeployment",
    ["kind", "result"],
)

_server_started = False


def start_metrics_server(port: int):
    """Start the Prometheus exporter once; port 0 disables it."""
    global _server_started
    if _server_started or port <= 0:
        return
    start_http_server(port)
    _server_started = True
    logger.info(f"Metrics exposed on :{port}/metrics")
