"""
marketplace_api.services

Service-layer package.

Responsibilities:
- Own transaction boundaries for account and catalog writes.
- Keep business rules (role upgrades, discounts, reviews) out of routers.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services receive a session explicitly; they never reach into request state.
