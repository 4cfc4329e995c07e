"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary only; internal values use core/domain_types

Design Decisions:
    - Separate from core types: schemas are API contracts, core types flow through the relay
"""
