#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Main application entry point - OpenAI format over Gemini Code Assist
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from gemini_proxy.config import settings
from gemini_proxy.openai_api import router as openai_router
from gemini_proxy.services.network_manager import network_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await network_manager.cleanup_clients()


# Create FastAPI app
app = FastAPI(
    title="Gemini OpenAI Compatible API Server",
    description="OpenAI-compatible API server backed by Gemini Code Assist",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Include API router
app.include_router(openai_router)


@app.options("/")
async def handle_options():
    """Handle OPTIONS requests"""
    return Response(status_code=200)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Gemini OpenAI Compatible API Server",
        "version": "1.0.0",
        "description": "OpenAI chat completions on top of Gemini Code Assist",
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.LISTEN_PORT,
        http="httptools",
        reload=False,
        log_level="info",
    )
