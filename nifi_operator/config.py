"""
Operator settings, read once from the environment at import.

Covers cluster access, the watched CRD, the ownership labels stamped on every
managed resource (and the label query the delete cascade uses), the template
and values locations, and the metrics port.
"""
import os
from dataclasses import dataclass
from pathlib import Path

_PACKAGE_DIR = Path(__file__).parent


@dataclass(frozen=True)
class Settings:
    # Kubernetes
    KUBECONFIG: str = os.environ.get("KUBECONFIG", "")
    IN_CLUSTER: bool = os.environ.get("IN_CLUSTER", "false").lower() == "true"
    WATCH_NAMESPACE: str = os.environ.get("WATCH_NAMESPACE", "")

    # CRD
    CRD_GROUP: str = os.environ.get("CRD_GROUP", "kubefi.io")
    CRD_VERSION: str = os.environ.get("CRD_VERSION", "v1")
    CRD_PLURAL: str = os.environ.get("CRD_PLURAL", "nifideployments")
    CRD_KIND: str = os.environ.get("CRD_KIND", "NiFiDeployment")

    # Ownership labels stamped on every managed resource
    CONTROLLER_ID: str = os.environ.get("CONTROLLER_ID", "Kubefi")
    RELEASE_LABEL: str = "nifi"

    # Templates
    TEMPLATE_PATH: str = os.environ.get("TEMPLATE_PATH", str(_PACKAGE_DIR / "templates"))
    VALUES_PATH: str = os.environ.get(
        "VALUES_PATH", str(_PACKAGE_DIR / "templates" / "values.yaml")
    )

    # Deletion
    DELETE_PROPAGATION_POLICY: str = os.environ.get("DELETE_PROPAGATION_POLICY", "Background")

    # Observability
    METRICS_PORT: int = int(os.environ.get("METRICS_PORT", "9090"))
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    @property
    def label_selector(self) -> str:
        """Label query matching every resource the templates create."""
        return f"app.kubernetes.io/managed-by={self.CONTROLLER_ID},release={self.RELEASE_LABEL}"


settings = Settings()
