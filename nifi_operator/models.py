"""
Pydantic models for the NiFiDeployment custom resource and its status.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from nifi_operator.config import settings


class Action(str, Enum):
    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"


class LdapAuth(BaseModel):
    """LDAP login provider settings rendered into the NiFi config."""
    model_config = ConfigDict(populate_by_name=True)

    host: str
    search_base: str = Field(..., alias="searchBase")
    search_filter: str = Field(default="uid={0}", alias="searchFilter")
    manager_dn: Optional[str] = Field(default=None, alias="managerDn")
    manager_password: Optional[str] = Field(default=None, alias="managerPassword")
    identity_strategy: str = Field(default="USE_USERNAME", alias="identityStrategy")
    initial_admin: Optional[str] = Field(default=None, alias="initialAdmin")


class DeploymentSpec(BaseModel):
    """Desired state of a NiFi cluster and its ZooKeeper ensemble."""
    model_config = ConfigDict(populate_by_name=True)

    image: Optional[str] = None
    zk_image: Optional[str] = Field(default=None, alias="zkImage")
    nifi_replicas: int = Field(default=1, ge=0, alias="nifiReplicas")
    zk_replicas: int = Field(default=1, ge=0, alias="zkReplicas")
    storage_class: Optional[str] = Field(default=None, alias="storageClass")
    ldap: Optional[LdapAuth] = None


class ObjectMeta(BaseModel):
    name: Optional[str] = None
    namespace: Optional[str] = None


class NiFiDeployment(BaseModel):
    kind: str = settings.CRD_KIND
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: DeploymentSpec = Field(default_factory=DeploymentSpec)

    @classmethod
    def from_body(cls, body: Any) -> "NiFiDeployment":
        """Build from a raw custom resource dict (or kopf Body)."""
        deployment = cls.from_metadata(body)
        deployment.spec = DeploymentSpec.model_validate(dict(body.get("spec") or {}))
        return deployment

    @classmethod
    def from_metadata(cls, body: Any) -> "NiFiDeployment":
        """Identity only, with a default spec. Never fails on a malformed spec."""
        metadata = body.get("metadata") or {}
        return cls(
            kind=body.get("kind") or settings.CRD_KIND,
            metadata=ObjectMeta(
                name=metadata.get("name"),
                namespace=metadata.get("namespace"),
            ),
        )


class DeploymentStatus(BaseModel):
    """Status written back onto the custom resource after each event."""
    model_config = ConfigDict(populate_by_name=True)

    last_action: Action = Field(..., alias="lastAction")
    error: str = ""

    def to_patch(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class ReplaceStatus(BaseModel):
    name: Optional[str] = None
    status: DeploymentStatus
