"""
Admin module for the storefront admin console.

- Permission gates for admin endpoints (``dependencies``)
- Admin-user management, access checks and catalog endpoints (``router``)
- Structured audit logging (``services.audit_service``)

Access decisions are made by ``app.auth.evaluator``; this package only
wires them into HTTP routes.
"""

__all__: list[str] = []
