"""
CRM error taxonomy.

Primary operations let these propagate to the caller. Best-effort enrichment
(see crm.propagation) catches everything and reports an Outcome instead.
"""


class CRMError(Exception):
    """Base class for every error raised by leadcrm."""


class NotConfigured(CRMError):
    """Credentials or container configuration is missing."""


class NotFound(CRMError):
    """A named document, tab, row or task does not exist."""


class ValidationFailed(CRMError):
    """A required caller-supplied argument is missing or empty."""


class RemoteCallFailed(CRMError):
    """A backend API call failed (network, quota, permission, ...)."""
    def __init__(self, operation, message, status=None):
        self.operation = operation
        self.status = status
        detail = f" (HTTP {status})" if status else ''
        super().__init__(f"{operation} failed{detail}: {message}")


class MigrationStalled(CRMError):
    """A migration step ran but the live header did not move forward."""
    def __init__(self, before, after):
        self.before = before
        self.after = after
        super().__init__(f"Header migration made no progress: {before.name} → {after.name}")
