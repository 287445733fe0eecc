from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes.documents import router as documents_router
from src.api.routes.meetings import router as meetings_router
from src.api.routes.query import router as query_router
from src.config import configure_logging

configure_logging()

app = FastAPI(
    title="Meeting Sync API",
    description="Keeps team documentation and tasks in step with meetings",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
    ],
    allow_origin_regex=r"https://.*\.vercel\.app|http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(meetings_router)
app.include_router(query_router)
app.include_router(documents_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
