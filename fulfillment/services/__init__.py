"""Services Layer — imperative shell around the pure core.

Invariants:
    - Services call core/ for every decision; they add IO, caching and logging only
    - Client-side services talk to the backend through FulfillmentApi, never the DB
    - order_workflow is the only service that writes orders to the database

Design Decisions:
    - Explicit owned objects over ambient singletons: each session/cache is
      constructed by the caller (see client.build_storefront)
"""
