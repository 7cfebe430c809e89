"""
Zoo Registry API: Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID: store/generate the correlation ID used by every log line
    - Logging:    log method, path, status and duration with that ID
    - CORS:       FastAPI's CORSMiddleware (handles preflight)
"""
