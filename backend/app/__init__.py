"""
Inkwell Backend — Application Package Initializer
===================================================

Architecture Note:
    ┌─────────────────────────────────────┐
    │   Routes (HTTP + chat WebSocket)    │  ← transport concerns only
    ├─────────────────────────────────────┤
    │   Services                          │
    │   MessageRelay → SessionRegistry    │  ← send/deliver/history
    │               → MessageStore        │
    ├─────────────────────────────────────┤
    │   Models & Schemas                  │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database                          │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
