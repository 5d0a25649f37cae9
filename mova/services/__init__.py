"""
SERVICES PACKAGE
================

Business logic lives here. The API layer (mova.main) calls these services;
they don't handle HTTP, only chat flow, backend calls, and error handling.

MODULES:
    errors          - ErrorKind taxonomy and classify_failure()
    gemini_backend  - google-genai client wrapper (the only network code)
    orchestrator    - model fallback / retry policies for chat, analyze, edit, generate
    chat_service    - in-memory sessions and conversation turns
"""
