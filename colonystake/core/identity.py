"""
Identity keys.

A position is keyed by one int that packs the collection id into the high
128 bits and the token id into the low 128 bits. Collection id 0 is reserved.
"""

from __future__ import annotations

from .math import require_uint


TOKEN_ID_BITS = 128
_TOKEN_MASK = (1 << TOKEN_ID_BITS) - 1
MAX_COLLECTION_ID = (1 << 128) - 1
MAX_TOKEN_ID = _TOKEN_MASK


def pack_identity(collection_id: int, token_id: int) -> int:
    require_uint("collection_id", collection_id)
    require_uint("token_id", token_id)
    if collection_id == 0 or collection_id > MAX_COLLECTION_ID:
        raise ValueError(f"collection_id out of range: {collection_id}")
    if token_id > MAX_TOKEN_ID:
        raise ValueError(f"token_id out of range: {token_id}")
    return (collection_id << TOKEN_ID_BITS) | token_id


def unpack_identity(identity_key: int) -> tuple[int, int]:
    require_uint("identity_key", identity_key)
    collection_id = identity_key >> TOKEN_ID_BITS
    if collection_id == 0 or collection_id > MAX_COLLECTION_ID:
        raise ValueError(f"identity_key has invalid collection: {identity_key}")
    return collection_id, identity_key & _TOKEN_MASK


def collection_of(identity_key: int) -> int:
    return unpack_identity(identity_key)[0]
