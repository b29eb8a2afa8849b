"""
Permission management feature module.

Implements role-based access control for hospital administration:
named permissions, role and user bindings, and the has_permission check.
"""
