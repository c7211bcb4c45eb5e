import logging
from contextlib import asynccontextmanager
from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.logging_buffer import decision_buffer
from app.core.logging_setup import setup_logging
from app.services.client_ip import format_peer_address
from app.services.geo_access import GeoAccessEngine, parse_header_templates, render_placeholders
from app.services.policy import split_list

logger = logging.getLogger(__name__)


def create_app(
    engine: GeoAccessEngine | None = None,
    *,
    response_headers: str | None = None,
    exempt_paths: Iterable[str] | None = None,
) -> FastAPI:
    header_templates = parse_header_templates(
        settings.GEOIP_RESPONSE_HEADERS if response_headers is None else response_headers
    )
    exempt = frozenset(split_list(settings.GEOIP_EXEMPT_PATHS) if exempt_paths is None else exempt_paths)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        access = engine
        if access is None and settings.GEOIP_ENABLED:
            # DatabaseOpenError propagates: the server must not start with a broken handle.
            access = GeoAccessEngine.from_settings(settings, logger=logging.getLogger("app.geoip"))
        elif access is None:
            logger.warning("GeoIP access control disabled (GEOIP_ENABLED=0)")
        app.state.geo_access = access

        yield

        if access is not None and engine is None:
            access.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    @app.middleware("http")
    async def geoip_middleware(request: Request, call_next):
        access = getattr(request.app.state, "geo_access", None)
        if access is None or request.url.path in exempt:
            return await call_next(request)

        client = request.client
        remote_addr = format_peer_address(client.host, client.port) if client else ""
        ctx = access.evaluate(request.headers, remote_addr)

        attributes = ctx.attributes()
        request.state.geoip = ctx
        request.state.geoip_attributes = attributes

        client_ip = str(ctx.client_ip) if ctx.client_ip is not None else None
        decision_buffer.add(ctx.verdict.value, client_ip, request.method, request.url.path, attributes)

        if not ctx.permitted:
            logger.info(
                "GeoIP denied %s %s from %s (%s)",
                request.method,
                request.url.path,
                client_ip or "unknown",
                attributes["country_code"],
            )
            return JSONResponse(status_code=403, content={"detail": "forbidden"})

        response = await call_next(request)
        for name, template in header_templates.items():
            response.headers[name] = render_placeholders(template, attributes)
        return response

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": settings.VERSION}

    return app


app = create_app()
