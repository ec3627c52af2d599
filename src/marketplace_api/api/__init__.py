"""
marketplace_api.api

HTTP layer of the marketplace service.

Responsibilities:
- FastAPI app factory, routers and error translation.
- API-layer dependency wiring (settings, sessions, query options).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers stay thin: body validation + auth dependencies + delegation to services/repos.
