"""Services Layer — method catalog, local handlers, dispatcher, and response emitter.

Invariants:
    - Method catalog uses explicit registration (no auto-discovery)
    - Dispatcher and emitter hold no per-request state between calls

Design Decisions:
    - One module per pipeline stage for locality (ADR: ExMA no god objects)
"""
