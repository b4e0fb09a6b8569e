"""Storefront FastAPI application.

Processes every command synchronously inside the request. Each request runs
in a pushed ``storefront`` domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → in-memory stores
#   - "production" → PostgreSQL
# STOREFRONT_GATEWAY picks the payment gateway ("fake" or "intasend").
from storefront.domain import storefront
from storefront.gateway import build_gateway

storefront.init()

from storefront.api.application import create_app  # noqa: E402

app = create_app(build_gateway(storefront.config))
