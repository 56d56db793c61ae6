import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meeting_digest.api.routes.recordings import router as recordings_router
from meeting_digest.api.routes.transcripts import router as transcripts_router
from meeting_digest.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Meeting Digest API",
    description="Zoom recording transcription and structured meeting summaries",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(transcripts_router)
app.include_router(recordings_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
