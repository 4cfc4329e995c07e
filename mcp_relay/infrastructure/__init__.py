"""Infrastructure Layer — upstream HTTP client and cross-cutting concerns (logging).

Invariants:
    - Infrastructure never imports from services/ or api/
    - All external calls wrapped with timeout and error mapping

Design Decisions:
    - Wrappers over raw clients (ADR: ExMA single responsibility)
"""
