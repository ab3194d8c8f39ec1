"""ORM base for the order store (engine and sessions live in infrastructure/database.py)."""
