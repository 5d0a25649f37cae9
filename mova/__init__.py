"""
MOVA AI APPLICATION PACKAGE
===========================

Main Python package for the mova ai backend.

FILE STRUCTURE:
  mova/
    __init__.py   - This file; marks 'mova' as a package.
    main.py       - FastAPI app and all HTTP endpoints (/chat, /chat/analyze, /chat/edit, ...).
    models.py     - Pydantic models: conversation turns, intents, API requests and responses.
    services/     - Business logic: Gemini backend, request orchestrator, chat sessions, errors.
    utils/        - Helpers: retry policies, image decoding.
"""
