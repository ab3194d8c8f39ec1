"""Campo Vida Fulfillment — cart, pricing, COD gate and order lifecycle.

Invariants:
    - Importing the package has no side effects beyond defining __version__

Design Decisions:
    - No re-exports: callers import from the owning module
"""

__version__ = "1.0.0"
