from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .routers import print_requests

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("printdesk")

app = FastAPI(
    title=settings.APP_NAME,
    description="3D-printing service desk: material, printer, settings and price for a project description",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(print_requests.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "printdesk"}
