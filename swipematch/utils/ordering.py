"""
Seeded card ordering shared by every directory implementation.

The PostgreSQL directory computes the same key in SQL with
``md5(seed || ':' || id)``, so both stores deliver identical orders.
"""

import hashlib
import secrets


def card_sort_key(seed: str, listing_id: str) -> str:
    return hashlib.md5(f"{seed}:{listing_id}".encode("utf-8")).hexdigest()


def new_session_seed() -> str:
    return secrets.token_hex(8)
