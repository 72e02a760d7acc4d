# app/access/exceptions.py
"""Single-resource access failures.

Denied and absent resources both become a client-facing rejection, but they are
raised as different types so handlers and request logs can tell them apart.
"""


class AccessControlError(Exception):
    """Base class for single-resource access failures."""

    status_code = 400

    def __init__(self, resource_kind: str, resource_id: str, principal_id: str = None):
        self.resource_kind = resource_kind
        self.resource_id = resource_id
        self.principal_id = principal_id
        super().__init__(self.detail)

    @property
    def detail(self) -> str:
        return f"{self.resource_kind} {self.resource_id}"


class AccessDeniedError(AccessControlError):
    """The resource exists but the principal may not see it."""

    status_code = 403

    @property
    def detail(self) -> str:
        return f"Access denied to {self.resource_kind}"


class ResourceNotFoundError(AccessControlError):
    """No resource with the requested id exists."""

    status_code = 404

    @property
    def detail(self) -> str:
        return f"{self.resource_kind.capitalize()} not found"
