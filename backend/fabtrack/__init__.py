"""
Fabtrack Backend — Application Package Initializer
===================================================

What: Marks the `fabtrack` directory as a Python package.
Why:  Enables module imports like `from fabtrack.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend follows the same layered shape for every request:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Business Rules)       │  ← Validation, QR code, orchestration
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes map status codes and payload shapes, services own the rules for
    forms (required fields, the two update paths, QR generation), and the
    database layer owns the connection lifecycle.
"""

__version__ = "1.0.0"
