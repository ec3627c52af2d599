"""
marketplace_api.auth

Authentication/authorization package.

Responsibilities:
- Token service (JWT issue/verify).
- Password hashing and the pre-persist credential transformation.
- Authentication + authorization pipeline stages and their FastAPI dependencies.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# `pipeline` has no web imports; `deps` is the only FastAPI-aware module here.
