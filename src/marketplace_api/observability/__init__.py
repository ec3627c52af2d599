"""
marketplace_api.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation for consistent log enrichment.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Auth rejections are logged from `auth.pipeline`; request ids come from the middleware.
