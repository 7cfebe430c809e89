"""
Zoo Registry API: Application Package Initializer
==================================================

What: Marks the `zoo_api` directory as a Python package.
Who:  Imported by uvicorn (`uvicorn zoo_api.main:app`), pytest, and every module.

Architecture Note:
    The backend follows the same layered shape throughout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Identity, Habitat)      │  ← Credential and link rules
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   DocumentStore / Database          │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The identity and habitat services never import each other; the route
    layer composes them.
"""

__version__ = "1.0.0"
