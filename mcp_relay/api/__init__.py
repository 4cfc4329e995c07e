"""API Layer — FastAPI routes and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Buffered endpoints return structured JSON; stream requests return text/event-stream

Design Decisions:
    - Thin routes delegate to services (ADR: ExMA impureim sandwich)
"""
