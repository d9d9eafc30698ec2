"""
Batching and batch checksums.

Batches are consecutive slices of the drained queue. They are never
regrouped: the queue already guarantees per-task chronological order, and
sequential dispatch carries that order across batch boundaries.
"""

from typing import Iterable, List, Sequence, Tuple

import xxhash

from ..models.mutation import QueuedMutation

CHECKSUM_SEPARATOR = "|"


def make_batches(mutations: Sequence[QueuedMutation], batch_size: int) -> List[List[QueuedMutation]]:
    """
    Split mutations into consecutive chunks of at most ``batch_size``.

    Raises:
        ValueError: If batch_size is smaller than 1
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return [list(mutations[i:i + batch_size]) for i in range(0, len(mutations), batch_size)]


def checksum_of_fields(items: Iterable[Tuple[object, str, str, int]]) -> str:
    """
    Hash an ordered sequence of (id, entity_id, operation, created_at_ms) tuples.

    Exposed separately so the receiving side can recompute the checksum from
    the wire payload.
    """
    data = CHECKSUM_SEPARATOR.join(
        f"{item_id}-{entity_id}-{operation}-{created_ms}"
        for item_id, entity_id, operation, created_ms in items
    )
    return xxhash.xxh64(data.encode('utf-8')).hexdigest()


def checksum(batch: Sequence[QueuedMutation]) -> str:
    """Transport-integrity checksum of a batch. Not a security boundary."""
    return checksum_of_fields(
        (m.id, m.entity_id, m.operation.value, m.created_at_ms) for m in batch
    )
