"""Resource quantities, quota list operations, pod helpers and RBAC policy checks."""

__version__ = "0.1.0"