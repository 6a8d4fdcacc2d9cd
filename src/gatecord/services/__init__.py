"""Service layer: sequences repository calls and owns in-memory caches.

Modules:
- settings_service.py: prefixes, no-prefix grants and blacklist flags
- entitlement_store.py: premium grants, lazy expiry and the expiry sweep
- no_prefix_policy.py: drops no-prefix grants whose holder lost premium
"""
