"""Core Layer — pure fulfillment domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, models/ or db/
    - All functions are pure and deterministic (clock values are passed in)

Design Decisions:
    - Functional core separated from imperative shell: the same state machine
      runs on the backend (authoritative) and in client-side guards
"""
