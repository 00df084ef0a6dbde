"""
Operator error taxonomy.

Every failure the reconciliation core can report is one of these types.
Kubernetes ApiExceptions are translated into UpstreamApiError at the
resource-kind boundary (services/kubernetes_service.py) and never leak
past it.
"""
from typing import Optional


class OperatorError(Exception):
    """Base class for all NiFi operator errors."""


class MissingProperty(OperatorError):
    """A required identity field of the custom resource is absent."""

    def __init__(self, property_name: str, kind: str):
        self.property_name = property_name
        self.kind = kind
        super().__init__(f"Property '{property_name}' for {kind} resource is missing")


class MissingTemplateParameter(OperatorError):
    """A template value was found neither in the resource nor in controller values."""

    def __init__(self, parameter: str):
        self.parameter = parameter
        super().__init__(
            f"Template parameter '{parameter}' is not specified in the resource "
            f"nor in the controller values"
        )


class ManifestParseError(OperatorError):
    """Rendered template text is not a valid manifest."""

    def __init__(self, template: str, reason: str):
        self.template = template
        self.reason = reason
        super().__init__(f"Failed to parse manifest rendered from '{template}': {reason}")


class UpstreamApiError(OperatorError):
    """A Kubernetes API call failed."""

    def __init__(
        self,
        operation: str,
        kind: str,
        name: str,
        status: Optional[int] = None,
        reason: str = "",
    ):
        self.operation = operation
        self.kind = kind
        self.name = name
        self.status = status
        self.reason = reason
        super().__init__(
            f"Kubernetes API {operation} of {kind} '{name}' failed "
            f"(status={status}): {reason}"
        )
