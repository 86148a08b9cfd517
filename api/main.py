"""Furniture Studio FastAPI Application"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
load_dotenv()  # Load .env file

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import design, health

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler."""
    logger.info("Starting Furniture Studio API...")
    design.get_engine()
    yield
    logger.info("Shutting down Furniture Studio API...")
    design.reset_engine()


app = FastAPI(
    title="Furniture Studio",
    description="Parametric lattice furniture generation and STL export API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(design.router, prefix="/api/design", tags=["Design"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Furniture Studio",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs",
    }
