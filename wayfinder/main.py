import sys

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from wayfinder.config import settings
from wayfinder.models.request import RouteRequest
from wayfinder.models.response import ErrorResponse, RouteResponse
from wayfinder.services.map.rate_limiter import rate_limiter
from wayfinder.services.route.errors import ProviderFatalError, RouteSearchError
from wayfinder.services.route.response_builder import ResponseBuilderService
from wayfinder.services.route_service import RouteService

logger.remove()  # Remove default handler
logger.add(
    sys.stderr,
    level=settings.log_level,
    format="<green>{time:HH:mm:ss}</green> | <level>{level}</level> | <cyan>{name}:{function}</cyan> | {message}",
)

app = FastAPI(
    title="Wayfinder API",
    description="Distance-targeted walking and cycling route generation API",
    version=settings.api_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_route_service = None
response_builder = ResponseBuilderService()


def get_route_service() -> RouteService:
    """Route service instance (created on first request)"""
    global _route_service
    if _route_service is None:
        _route_service = RouteService()
    return _route_service


@app.exception_handler(RouteSearchError)
async def route_search_error_handler(request: Request, exc: RouteSearchError):
    if isinstance(exc, ProviderFatalError):
        logger.critical(f"🚨 Routing provider misconfigured: {exc.reason}")
    else:
        logger.warning(f"⚠️ {request.url.path} failed ({exc.kind}): {exc}")
    body = response_builder.build_error(exc)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# main api
@app.post(
    "/api/v1/routes/generate",
    response_model=RouteResponse,
    responses={status: {"model": ErrorResponse} for status in (400, 404, 422, 502, 503, 504)},
)
async def generate_route(
    request: RouteRequest, route_service: RouteService = Depends(get_route_service)
):
    """Generate a walking loop or a two-day cycling route for a country/city"""
    try:
        return await route_service.generate_route(request)
    except RouteSearchError:
        raise
    except Exception as e:
        logger.exception(f"❌ Unexpected error while generating route: {e}")
        raise HTTPException(
            status_code=500, detail=f"Route generation failed: {str(e)}"
        )


@app.get("/health")
async def health_check():
    """Health check"""
    return {
        "status": "healthy",
        "version": settings.api_version,
        "routing_requests_remaining": rate_limiter.remaining("openrouteservice"),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
