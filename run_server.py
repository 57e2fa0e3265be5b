#!/usr/bin/env python3
"""
Development server launcher for the Model Fit Lab API.

This script starts the FastAPI server with appropriate settings for development.
For production, you'd use a proper ASGI server deployment.
"""

import logging
import uvicorn
from pathlib import Path

project_root = Path(__file__).parent
package_path = project_root / "fitlab"

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    print("Starting Model Fit Lab API Development Server")
    print(f"Project root: {project_root}")
    print("Server will be available at: http://localhost:8000")
    print("API documentation at: http://localhost:8000/docs")
    print("\n" + "="*50 + "\n")

    uvicorn.run(
        "fitlab.api.main:app",
        host="0.0.0.0",  # Accept connections from any IP
        port=8000,
        reload=True,     # Auto-reload on code changes (development only)
        reload_dirs=[str(package_path)],  # Only watch the package directory
        log_level="info"
    )
