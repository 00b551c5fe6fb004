from __future__ import annotations

from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from config import Configuration
from errors import CafeSearchError
from models import Cafe, CustomTime, LatLng, SearchRequest
from services.cafe_search import CafeStore, PlacesProvider, search_cafes
from services.cafe_store import SupabaseCafeStore
from services.google_places import GooglePlacesClient
from services.reviews import record_review


load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing credentials should stop the process, not fail each request.
    cfg = Configuration.from_env()
    cfg.require_google_maps()
    cfg.require_supabase()
    logger.info("cfg: {}", cfg.log_summary())
    app.state.cfg = cfg
    app.state.places = GooglePlacesClient(cfg)
    app.state.store = SupabaseCafeStore(cfg)
    yield


app = FastAPI(title="Cafe Hopper", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_config(request: Request) -> Configuration:
    return request.app.state.cfg


def get_places(request: Request) -> PlacesProvider:
    return request.app.state.places


def get_store(request: Request) -> SupabaseCafeStore:
    return request.app.state.store


class GeolocationPayload(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None


class CustomTimePayload(BaseModel):
    day: Optional[int] = Field(None, description="0 = Sunday .. 6 = Saturday")
    time: Optional[str] = Field(None, description="24-hour HHMM")


class CafeSearchPayload(BaseModel):
    query: Optional[str] = None
    radius: Optional[float] = Field(None, description="Search radius in meters")
    geolocation: Optional[GeolocationPayload] = None
    openNow: Optional[bool] = None
    tags: Optional[List[str]] = None
    sortBy: Optional[str] = Field(None, description="distance | relevance")
    customTime: Optional[CustomTimePayload] = None
    rating: Optional[float] = Field(None, description="Minimum rating, inclusive")

    def to_request(self) -> SearchRequest:
        geo = None
        if self.geolocation is not None:
            geo = LatLng(lat=self.geolocation.lat, lng=self.geolocation.lng)  # type: ignore[arg-type]
        custom_time = None
        if self.customTime is not None:
            custom_time = CustomTime(day=self.customTime.day, time=self.customTime.time)
        return SearchRequest(
            query=self.query,
            radius=self.radius,
            geolocation=geo,
            open_now=self.openNow,
            tags=list(self.tags or []),
            sort_by=self.sortBy,
            custom_time=custom_time,
            rating=self.rating,
        )


class CafePayload(BaseModel):
    id: str
    name: str
    address: str
    latitude: float
    longitude: float
    hours: str
    tags: List[str] = []
    rating: float = 0.0
    num_reviews: int = 0
    image: str = ""
    summary: str = ""

    @classmethod
    def from_cafe(cls, cafe: Cafe) -> "CafePayload":
        return cls(**cafe.to_row())


class CafeSearchResponse(BaseModel):
    cafes: List[CafePayload]
    error: str = ""


class ReviewPingPayload(BaseModel):
    cafeId: str
    rating: float


class ReviewPingResponse(BaseModel):
    cafe: CafePayload


def _status_for(kind: Optional[str]) -> int:
    return 500 if kind == "collaborator" else 400


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = "; ".join(
        "%s: %s" % (".".join(str(p) for p in err.get("loc", ()) if p != "body"), err.get("msg"))
        for err in errors
    )
    return JSONResponse(status_code=400, content={"error": detail or "invalid request"})


@app.get("/healthz")
def healthz() -> dict:
    cfg = Configuration.from_env()
    logger.info("cfg: {}", cfg.log_summary())
    return {"status": "ok"}


@app.post("/cafes/search", response_model=CafeSearchResponse)
async def cafes_search(
    payload: CafeSearchPayload,
    cfg: Configuration = Depends(get_config),
    places: PlacesProvider = Depends(get_places),
    store: CafeStore = Depends(get_store),
):
    try:
        result = await search_cafes(payload.to_request(), places, store, cfg)
    except Exception as exc:
        logger.exception("cafe search failed: {}", exc)
        return JSONResponse(status_code=500, content={"error": "An unexpected error occurred"})

    if result.error:
        return JSONResponse(status_code=_status_for(result.error_kind), content={"error": result.error})
    return CafeSearchResponse(cafes=[CafePayload.from_cafe(c) for c in result.cafes], error="")


@app.put("/cafes/ping", response_model=ReviewPingResponse)
def cafes_ping(payload: ReviewPingPayload, store: SupabaseCafeStore = Depends(get_store)):
    try:
        cafe = record_review(store, payload.cafeId, payload.rating)
    except CafeSearchError as exc:
        return JSONResponse(status_code=_status_for(exc.kind), content={"error": str(exc)})
    except Exception as exc:
        logger.exception("review ping failed: {}", exc)
        return JSONResponse(status_code=500, content={"error": "An unexpected error occurred"})
    return ReviewPingResponse(cafe=CafePayload.from_cafe(cafe))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=3000, reload=True)
