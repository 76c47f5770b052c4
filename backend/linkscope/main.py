"""FastAPI application for linkscope backend"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linkscope.config import settings
from linkscope.services.transaction_store import close_transaction_store, get_transaction_store
from linkscope.api import graph, privacy

log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
for name in ("linkscope", "uvicorn", "uvicorn.access"):
    logging.getLogger(name).setLevel(log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the transaction store on startup and close it on shutdown"""
    logger.info("Starting linkscope backend...")
    await get_transaction_store()
    logger.info("Transaction store initialized")

    yield

    logger.info("Shutting down linkscope backend...")
    await close_transaction_store()


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Bitcoin transaction privacy and graph analysis API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(privacy.router, prefix="/api/privacy", tags=["Privacy"])
app.include_router(graph.router, prefix="/api/graph", tags=["Graph"])


@app.get("/")
async def root():
    """Service name and version"""
    return {
        "name": "linkscope API",
        "version": settings.api_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
