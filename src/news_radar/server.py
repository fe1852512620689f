"""FastAPI service exposing query, lookup, trending and event endpoints."""

from __future__ import annotations

import math
import os
import threading
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import configure_logging, get_settings
from .errors import MissingParameter, StorageFailure, UnknownIntent
from .models import ArticleResponse, IntentKind, UserEventIn
from .service import NewsService


def _add_cors(app: FastAPI) -> None:
    """Allow browser clients to call the API during local development."""
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    allow_credentials = (
        os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    )
    if allow_all or not origins:
        origins = ["*"]
    if origins == ["*"] and allow_credentials:
        # Starlette/FastAPI disallow wildcard origins when credentials are enabled.
        allow_credentials = False
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": True, "message": message}
    )


def _add_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError):
        parts = []
        for err in exc.errors():
            location = ".".join(str(piece) for piece in err.get("loc", ())) or "<root>"
            parts.append(f"{location}: {err.get('msg')}")
        return _error(status.HTTP_400_BAD_REQUEST, "; ".join(parts))

    @app.exception_handler(MissingParameter)
    async def _missing_parameter(request: Request, exc: MissingParameter):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(UnknownIntent)
    async def _unknown_intent(request: Request, exc: UnknownIntent):
        return _error(422, str(exc))

    @app.exception_handler(StorageFailure)
    async def _storage_failure(request: Request, exc: StorageFailure):
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


MAX_HOURS_BACK = 24 * 365 * 100
MAX_LIMIT = 100

_FLOAT_BOUNDS = {
    "latitude": (-90.0, 90.0),
    "longitude": (-180.0, 180.0),
    "radius": (0.0, None),
}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _parse_float(raw: Optional[str], name: str, default: Optional[float] = None) -> float:
    if raw is None or not raw.strip():
        if default is None:
            raise _bad_request(f"Query parameter '{name}' is required")
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise _bad_request(f"Invalid {name}") from exc
    if not math.isfinite(value):
        raise _bad_request(f"Invalid {name}")
    low, high = _FLOAT_BOUNDS.get(name, (None, None))
    if (low is not None and value < low) or (high is not None and value > high):
        raise _bad_request(f"{name} is out of range")
    return value


def _parse_int(
    raw: Optional[str], name: str, default: int, *, maximum: int = MAX_LIMIT
) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise _bad_request(f"Invalid {name}") from exc
    if not 0 < value <= maximum:
        raise _bad_request(f"{name} must be between 1 and {maximum}")
    return value


def _require_text(raw: Optional[str], name: str) -> str:
    if raw is None or not raw.strip():
        raise _bad_request(f"Query parameter '{name}' is required")
    return raw


def _dump(articles: List[ArticleResponse]) -> List[Dict[str, Any]]:
    return jsonable_encoder(articles, exclude_none=True)


def create_app(service: NewsService | None = None) -> FastAPI:
    """Build the API; without an explicit service one is built from settings on first use."""
    app = FastAPI(title="News Radar")
    app.state.service = service
    _add_cors(app)
    _add_error_handlers(app)

    service_lock = threading.Lock()

    def _service() -> NewsService:
        with service_lock:
            if app.state.service is None:
                app.state.service = NewsService.from_settings()
        return app.state.service

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/v1/news/query")
    def query_news(
        q: Optional[str] = None,
        location: str = "",
        lat: Optional[str] = None,
        lon: Optional[str] = None,
        radius: Optional[str] = None,
    ) -> Dict[str, Any]:
        text = _require_text(q, "q")
        result = _service().query(
            text,
            location=location,
            lat=_parse_float(lat, "latitude") if lat else None,
            lon=_parse_float(lon, "longitude") if lon else None,
            radius=_parse_float(radius, "radius", 50.0),
        )
        return {
            "intent": jsonable_encoder(result.intent),
            "articles": _dump(result.articles),
            "count": len(result.articles),
        }

    @app.get("/api/v1/news/category")
    def by_category(category: Optional[str] = None) -> Dict[str, Any]:
        value = _require_text(category, "category")
        articles = _service().by_intent(IntentKind.CATEGORY, {"category": value})
        return {"articles": _dump(articles)}

    @app.get("/api/v1/news/source")
    def by_source(source: Optional[str] = None) -> Dict[str, Any]:
        value = _require_text(source, "source")
        articles = _service().by_intent(IntentKind.SOURCE, {"source": value})
        return {"articles": _dump(articles)}

    @app.get("/api/v1/news/score")
    def by_score(min_score: Optional[str] = None) -> Dict[str, Any]:
        value = _parse_float(min_score, "min_score", 0.7)
        articles = _service().by_intent(IntentKind.SCORE, {"min_score": value})
        return {"articles": _dump(articles)}

    @app.get("/api/v1/news/search")
    def search(query: Optional[str] = None) -> Dict[str, Any]:
        value = _require_text(query, "query")
        articles = _service().by_intent(IntentKind.SEARCH, {"query": value})
        return {"articles": _dump(articles)}

    @app.get("/api/v1/news/nearby")
    def nearby(
        lat: Optional[str] = None,
        lon: Optional[str] = None,
        radius: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "lat": _parse_float(lat, "latitude"),
            "lon": _parse_float(lon, "longitude"),
            "radius": _parse_float(radius, "radius", 10.0),
        }
        articles = _service().by_intent(IntentKind.NEARBY, params)
        return {"articles": _dump(articles)}

    @app.get("/api/v1/news/trending")
    def trending(
        lat: Optional[str] = None,
        lon: Optional[str] = None,
        radius: Optional[str] = None,
        limit: Optional[str] = None,
        hours_back: Optional[str] = None,
    ) -> Dict[str, Any]:
        articles = _service().trending(
            _parse_float(lat, "latitude"),
            _parse_float(lon, "longitude"),
            radius=_parse_float(radius, "radius", 50.0),
            limit=_parse_int(limit, "limit", 5),
            hours_back=_parse_int(
                hours_back, "hours_back", 24, maximum=MAX_HOURS_BACK
            ),
        )
        return {"articles": _dump(articles)}

    @app.get("/api/v1/news/categories")
    def categories() -> Dict[str, Any]:
        return {"categories": _service().categories()}

    @app.get("/api/v1/news/sources")
    def sources() -> Dict[str, Any]:
        return {"sources": _service().sources()}

    @app.post("/api/v1/events", status_code=status.HTTP_201_CREATED)
    def record_event(payload: UserEventIn) -> JSONResponse:
        _service().record_event(
            payload.article_id, payload.event_type, payload.latitude, payload.longitude
        )
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={"message": "Event recorded successfully"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    configure_logging(get_settings().log_level)
    uvicorn.run(
        "news_radar.server:app",
        host=os.getenv("NEWS_RADAR_HOST", "0.0.0.0"),
        port=int(os.getenv("NEWS_RADAR_PORT", "8000")),
        reload=os.getenv("NEWS_RADAR_RELOAD", "false").lower() == "true",
    )
