# Overview: Opaque identifiers for new records.

import uuid


def new_id() -> str:
    """Globally unique opaque id (UUID4, hex form)."""
    return uuid.uuid4().hex
