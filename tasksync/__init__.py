"""
Offline-first task sync client.

Local task mutations are queued durably and reconciled with a remote
authority in checksummed, chronologically ordered batches.
"""

__version__ = "0.1.0"
