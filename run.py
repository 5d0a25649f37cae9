"""
RUN SCRIPT - Start the mova ai server
=====================================

PURPOSE:
  Single entry point to start the backend. Run this once per user/machine.

WHAT IT DOES:
  - Runs the FastAPI app from mova.main with uvicorn on MOVA_HOST:MOVA_PORT
    (default 0.0.0.0:8000).
  - reload=True restarts the server when Python files change (handy for development).

USAGE:
  python run.py

  Then open http://localhost:8000/docs, or use the terminal client: python test.py

NOTE:
  Before running, set GEMINI_API_KEY in .env. Without it the server still
  starts, but every chat endpoint answers 503.
"""

import uvicorn

from config import HOST, PORT

# ------------------------------------------------------------------------------
# ENTRY POINT
# ------------------------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "mova.main:app",  # String path to the FastAPI app instance (module:variable).
        host=HOST,
        port=PORT,
        reload=True
    )
