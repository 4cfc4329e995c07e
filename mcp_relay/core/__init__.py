"""Core Layer — pure relay logic: content model, registry, SSE decode/encode. No IO.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - All functions are synchronous and deterministic

Design Decisions:
    - Functional core separated from imperative shell (ADR: ExMA impureim sandwich)
"""
