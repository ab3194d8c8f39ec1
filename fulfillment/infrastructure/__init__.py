"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure never imports core/ domain logic beyond errors and protocols
    - All external calls wrapped with timeout and error mapping, never retried

Design Decisions:
    - Thin wrappers over raw clients: services stay testable with fakes
"""
