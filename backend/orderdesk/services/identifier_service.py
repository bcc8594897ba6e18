# Overview: Service-layer operations for identifiers of documents created by order settlement.

"""
Identifiers for orders, order items, returns and return items.

These rows are created in bulk inside one transaction, before any of them
is flushed, so their keys are generated by the application rather than by
the database. The format is opaque to callers: anything taking an
`IdentifierGenerator` may be handed a deterministic one (tests) instead of
the UUID default.
"""

from __future__ import annotations

import uuid
from typing import Callable

# kind -> new unique identifier ("order", "order_item", "return", "return_item")
IdentifierGenerator = Callable[[str], str]


def generate_identifier(kind: str) -> str:
    """Return a new random UUID string. `kind` is accepted for interface parity."""
    return str(uuid.uuid4())


def sequential_identifiers(prefix: str = "") -> IdentifierGenerator:
    """
    Deterministic generator: "<prefix><kind>-1", "<prefix><kind>-2", ...

    Counters are kept per kind.
    """
    counters: dict[str, int] = {}

    def _next(kind: str) -> str:
        counters[kind] = counters.get(kind, 0) + 1
        return f"{prefix}{kind}-{counters[kind]}"

    return _next
