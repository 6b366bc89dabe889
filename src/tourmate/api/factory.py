"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from tourmate.observability.correlation import (
    CORRELATION_ID_HEADER,
    bind_correlation_id,
    generate_correlation_id,
    unbind_correlation_id,
)

from .routes import auth, bookings, cabins, profile


def create_app() -> FastAPI:
    """Create the booking API with every route mounted."""
    app = FastAPI(
        title="Tourmate Bookings",
        docs_url=None,
        redoc_url=None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = bind_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            unbind_correlation_id(token)

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint."""
        return {"status": "ok"}

    app.include_router(auth.router)
    app.include_router(cabins.router)
    app.include_router(bookings.router)
    app.include_router(profile.router)

    return app
