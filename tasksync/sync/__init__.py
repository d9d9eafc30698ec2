"""
Offline-first synchronization engine.

This module provides the components that reconcile local task mutations
with the remote authority:
- MutationQueue: durable, ordered queue of pending mutations
- DeadLetterStore: terminal store for mutations that exhausted retries
- SyncCoordinator: probe, drain, batch, dispatch and reconcile
- SyncService: facade used by the rest of the application
"""

from .conflict_resolver import ConflictResolver
from .connectivity import ConnectivityProber
from .coordinator import SyncCoordinator, SyncState
from .dead_letter_store import DeadLetterStore
from .mutation_queue import MutationQueue
from .remote_client import RemoteAuthorityClient
from .retry_policy import RetryPolicy
from .sync_service import SyncService

__all__ = [
    'ConflictResolver',
    'ConnectivityProber',
    'DeadLetterStore',
    'MutationQueue',
    'RemoteAuthorityClient',
    'RetryPolicy',
    'SyncCoordinator',
    'SyncService',
    'SyncState',
]
