"""
Feature modules live under this package.

Each module owns its models, service layer and API blueprint, and reuses the
platform primitives (auth, RBAC, audit, DB session) from ``app.archreview``.
"""
