"""FastAPI application assembly.

``create_app`` receives the payment gateway explicitly; the process entry
point (``src/app.py``) builds it from configuration and tests pass a fake.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api.errors import register_exception_handlers
from storefront.api.routes import cart_router, category_router, order_router, product_router
from storefront.domain import storefront
from storefront.gateway.port import PaymentGateway
from storefront.utils.logging import add_context, clear_context


def create_app(gateway: PaymentGateway) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.gateway.close()

    app = FastAPI(
        title="Storefront API",
        description="Catalog, cart, hosted checkout and order reconciliation",
        lifespan=lifespan,
    )
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context and bind request log context."""
        clear_context()
        add_context(method=request.method, path=request.url.path)
        with storefront.domain_context():
            response = await call_next(request)
        return response

    app.include_router(product_router)
    app.include_router(category_router)
    app.include_router(cart_router)
    app.include_router(order_router)
    register_exception_handlers(app)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "domain": storefront.name,
                "gateway": type(app.state.gateway).__name__,
            }
        )

    return app
