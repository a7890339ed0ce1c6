"""FastAPI server exposing the document harvester."""

import json
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from doc_harvester.config import load_config
from doc_harvester.errors import HarvestError, InvalidRequest, Unauthorized
from doc_harvester.logger import setup_logger
from doc_harvester.pipeline import HarvestPipeline, HarvestRequest, create_pipeline

load_dotenv()

config = load_config(os.environ.get("HARVEST_CONFIG", "config.yaml"))
logger = setup_logger(config.log_dir)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _pipeline is not None:
        await _pipeline.aclose()


app = FastAPI(
    lifespan=lifespan,
    title="Document Harvester API",
    version="0.1.0",
    description="Download lists of public documents into a single ZIP archive.",
)

# --- Rate limiting ---
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return Response(
        content=json.dumps({"error": "Rate limit exceeded. Please slow down.", "code": "RATE_LIMITED"}),
        status_code=429,
        media_type="application/json",
    )


@app.exception_handler(HarvestError)
async def harvest_error_handler(request: Request, exc: HarvestError):
    return JSONResponse(exc.to_dict(), status_code=exc.status)


# --- CORS ---
default_origins = "http://localhost:3000,http://127.0.0.1:3000"
cors_origins = os.environ.get("CORS_ORIGINS", default_origins).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Successful-Downloads", "X-Failed-Downloads",
                    "X-Total-Documents", "X-Download-Logs"],
)

if not config.api.token:
    logger.warning("HARVEST_API_TOKEN not set; /api/download accepts unauthenticated requests")


_pipeline: Optional[HarvestPipeline] = None


def get_pipeline() -> HarvestPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = create_pipeline(config)
    return _pipeline


def require_token(request: Request):
    if not config.api.token:
        return
    auth = request.headers.get("Authorization", "")
    if auth != f"Bearer {config.api.token}":
        raise Unauthorized("Unauthorized")


# --- Models ---

class DownloadRequest(BaseModel):
    documents: Optional[list[dict]] = None
    jobId: Optional[str] = None
    input: Optional[str] = None
    websiteUrl: Optional[str] = None
    url: Optional[str] = None

    def possible_url(self) -> str:
        return (self.websiteUrl or self.input or self.url or "").strip()


async def parse_body(request: Request) -> DownloadRequest:
    try:
        raw = await request.json()
    except ValueError as e:
        raise InvalidRequest("Request body is not valid JSON", detail=str(e)) from e
    try:
        return DownloadRequest.model_validate(raw)
    except ValidationError as e:
        raise InvalidRequest("Invalid request body", detail=str(e)) from e


# --- Routes ---

@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "doc-harvester"}


@app.post("/api/download", dependencies=[Depends(require_token)])
@limiter.limit(config.api.rate_limit)
async def download(request: Request, pipeline: HarvestPipeline = Depends(get_pipeline)):
    """Fetch the requested documents and return them as one ZIP.

    Counts and the per-document log travel in ``X-*`` response headers.
    """
    body = await parse_body(request)
    result = await pipeline.run(HarvestRequest(
        documents=body.documents,
        job_id=body.jobId,
        possible_url=body.possible_url(),
    ))

    summary = result.summary
    return Response(
        content=result.archive,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{result.file_name}"',
            "X-Successful-Downloads": str(summary.success_count),
            "X-Failed-Downloads": str(summary.failure_count),
            "X-Total-Documents": str(summary.total_requested),
            "X-Download-Logs": json.dumps(summary.log_dicts()),
        },
    )
