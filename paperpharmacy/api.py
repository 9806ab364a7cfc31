"""
Paper Pharmacy HTTP API.

Endpoints:
- POST /recommendations  three books for a mood, or {"error": ...}
- GET  /cover            Aladin cover URL for an ISBN-13
- GET  /search           best catalog hit for a title (and author)
- GET  /health           liveness probe
"""
import logging
from typing import AsyncIterator, Callable, List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from paperpharmacy.assembler import Recommender, assemble
from paperpharmacy.async_client import AsyncAladinClient
from paperpharmacy.client import build_query
from paperpharmacy.config import Config
from paperpharmacy.errors import DEFAULT_ERROR_MESSAGE, ConfigurationError, RecommendationError
from paperpharmacy.gemini import GeminiRecommender
from paperpharmacy.isbn import validate_isbn
from paperpharmacy.matcher import match_candidate
from paperpharmacy.models import Location, UserInput
from paperpharmacy.parse import parse_cover, parse_search_response

logger = logging.getLogger(__name__)


class UserInputBody(BaseModel):
    mood: str = ""
    situation: str = ""
    genre: str = ""
    purpose: str = ""


class LocationBody(BaseModel):
    latitude: float
    longitude: float


class RecommendationBody(BaseModel):
    userInput: Optional[UserInputBody] = None
    region: str = Config.DEFAULT_REGION
    excludeTitles: List[str] = []
    location: Optional[LocationBody] = None


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


# =============================================================================
# Dependencies (overridden in tests)
# =============================================================================


def get_config() -> Config:
    return Config()


async def get_catalog(config: Config = Depends(get_config)) -> AsyncIterator[AsyncAladinClient]:
    """One async catalog client per request, closed afterwards."""
    async with AsyncAladinClient(
        ttb_key=config.ALADIN_TTB_KEY,
        timeout=config.DEFAULT_TIMEOUT,
        max_concurrent=config.MAX_CONCURRENT
    ) as client:
        yield client


def get_recommender_factory(config: Config = Depends(get_config)) -> Callable[[], Recommender]:
    """Model construction is deferred so request validation runs first."""
    return lambda: GeminiRecommender(config.GEMINI_API_KEY, config.GEMINI_MODEL)


# =============================================================================
# App
# =============================================================================


def create_app() -> FastAPI:
    app = FastAPI(
        title="Paper Pharmacy API",
        description="Mood-based book recommendations with real ISBNs, covers and purchase links.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request, exc: ConfigurationError):
        logger.error(f"Configuration error: {exc}")
        return _error(500, str(exc))

    @app.exception_handler(RecommendationError)
    async def recommendation_error_handler(request, exc: RecommendationError):
        return _error(500, exc.message)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc!r}", exc_info=exc)
        return _error(500, DEFAULT_ERROR_MESSAGE)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/recommendations")
    async def recommendations(
        body: RecommendationBody,
        catalog: AsyncAladinClient = Depends(get_catalog),
        recommender_factory: Callable[[], Recommender] = Depends(get_recommender_factory),
        config: Config = Depends(get_config),
    ):
        if body.userInput is None or not body.userInput.mood:
            return _error(400, "userInput with mood is required")

        recommender = recommender_factory()
        user_input = UserInput(**body.userInput.model_dump())
        location = Location(**body.location.model_dump()) if body.location else None

        books = await assemble(
            user_input,
            body.region,
            body.excludeTitles,
            location,
            recommender=recommender,
            catalog=catalog,
            verify_covers=config.VERIFY_COVERS,
            max_results=config.CATALOG_MAX_RESULTS,
        )
        return [book.to_dict() for book in books]

    @app.get("/cover")
    async def cover(
        isbn: Optional[str] = Query(None),
        catalog: AsyncAladinClient = Depends(get_catalog),
    ):
        cleaned = validate_isbn(isbn)
        if not cleaned:
            return _error(400, "ISBN이 필요해요")

        response = await catalog.lookup(cleaned)
        if response is None:
            return _error(500, "이미지를 가져올 수 없어요")
        return {"cover": parse_cover(response)}

    @app.get("/search")
    async def search(
        title: Optional[str] = Query(None),
        author: Optional[str] = Query(None),
        catalog: AsyncAladinClient = Depends(get_catalog),
        config: Config = Depends(get_config),
    ):
        if not title:
            return _error(400, "책 제목이 필요해요")

        response = await catalog.search(build_query(title, author or ""), config.CATALOG_MAX_RESULTS)
        if response is None:
            return _error(500, "책을 검색할 수 없어요", found=False)

        candidates = parse_search_response(response, limit=config.CATALOG_MAX_RESULTS)
        best = match_candidate(title, author or "", candidates)
        if best is None:
            return _error(404, "책을 찾을 수 없어요", found=False)

        return {
            "found": True,
            "isbn13": best.isbn13 or None,
            "title": best.title or title,
            "author": best.author or author or None,
            "publisher": best.publisher or None,
            "cover": best.cover,
            "description": best.description,
        }

    return app


app = create_app()
