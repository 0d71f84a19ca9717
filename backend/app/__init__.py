"""
Inkwell Backend — Application Package Initializer
==================================================

Layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, Actor from headers
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← permission resolution, lifecycle
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
