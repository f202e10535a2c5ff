#!/usr/bin/env python3
"""
Simple script to run the FastAPI server
"""
import os

import uvicorn

import config

if __name__ == "__main__":
    config.configure_logging()
    uvicorn.run(
        "api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
        reload=os.getenv("API_RELOAD", "false").lower() == "true",
        log_level="info",
    )
