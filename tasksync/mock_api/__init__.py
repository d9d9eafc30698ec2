"""Mock remote authority server for local development and tests."""

from .server import AuthorityState, make_server, run_server

__all__ = ['AuthorityState', 'make_server', 'run_server']
