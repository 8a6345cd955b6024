import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.middleware.gzip import GZipMiddleware

from api import SessionDep
from api.assignments import assignments_router
from api.progress import progress_router
from api.review import review_router
from api.services.assignments import AssignmentService
from api.services.profiles import ProfileService
from api.services.progress import PlaybackProgressService
from api.services.review import ReviewService
from common_lib.service import running
from common_lib.uvicorn import EndpointFilter

load_dotenv()

CORS_REGEX = os.getenv("CORS_REGEX", r"(https?://)?(localhost|127\.0\.0\.1|([a-z0-9-]+\.)*academy\.local)(:\d+)?")

SERVICES = [ProfileService, AssignmentService, PlaybackProgressService, ReviewService]


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_dotenv()

    health_filter = EndpointFilter.add_filter("/api/")
    with running(*SERVICES):
        yield
    EndpointFilter.remove_filter(health_filter)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=CORS_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware)

base_url_router = APIRouter(prefix="/api")

@base_url_router.get("/")
def health(session: SessionDep):
    session.execute(text("SELECT 1"))
    return {"status": "ok"}


base_url_router.include_router(assignments_router, prefix="/assignments")
base_url_router.include_router(progress_router)
base_url_router.include_router(review_router, prefix="/teacher/assignments")
app.include_router(base_url_router)
