from typing import Optional


class PolicyScoutError(Exception):
    """Base exception for everything policy-scout raises on purpose."""
    pass


class ConfigurationError(PolicyScoutError):
    """
    Raised when we cannot build a working AWS session or the settings file is unusable.
    Nothing has been traversed yet when this fires.
    """
    pass


class ValidationError(ValueError, PolicyScoutError):
    """Raised at the CLI boundary for malformed user input."""
    pass


class OperationCancelled(PolicyScoutError):
    """Raised when the execution context is cancelled or its deadline passes."""
    pass


class OrganizationsAPIError(PolicyScoutError):
    """
    Raised when a call to AWS Organizations fails.
    Carries the operation name and the node it was issued for, so the user
    knows exactly where the traversal stopped.
    """
    def __init__(self, operation: str, target_id: Optional[str], message: str, error_code: str = ""):
        self.operation = operation
        self.target_id = target_id
        self.error_code = error_code
        where = f" for {target_id}" if target_id else ""
        super().__init__(f"{operation}{where} failed: {message}")


class HierarchyError(OrganizationsAPIError):
    """Raised when the parent chain of a node is broken (no parent, or more than one)."""
    pass


class UnsupportedOrganizationError(OrganizationsAPIError):
    """Raised when the organization has zero roots or more than one root."""
    pass
