"""
Mock remote authority for local development and testing.

This simple server accepts mutation batches from the sync client, keeps an
in-memory authoritative copy of every task, and answers with positional
outcomes. Use this for local development without a real backend.

Usage:
    python -m tasksync mock-server --port 3000

Endpoints (also available under the /api prefix):
    GET  /health   - Health check
    GET  /tasks    - Authoritative copies held by the server
    POST /batch    - Submit a batch of mutations
"""

import itertools
import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer, ThreadingHTTPServer
from typing import Any, Dict, Optional

from ..models.timestamps import epoch_ms, parse_timestamp, to_iso, utc_now
from ..sync.batcher import checksum_of_fields
from ..sync.remote_client import CHECKSUM_HEADER

logger = logging.getLogger(__name__)


class AuthorityState:
    """Authoritative task copies held by the mock server."""

    def __init__(self):
        self.tasks: Dict[str, Dict[str, Any]] = {}
        self.client_to_server: Dict[str, str] = {}
        self.received_batches = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def _server_id_for(self, item: Dict[str, Any]) -> Optional[str]:
        data = item.get("data") or {}
        return data.get("server_id") or self.client_to_server.get(item.get("task_id"))

    def process(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Apply one mutation and return its outcome entry."""
        with self._lock:
            operation = item.get("operation")
            if operation == "create":
                return self._create(item)
            if operation == "update":
                return self._update(item)
            if operation == "delete":
                return self._delete(item)
            return {
                "client_id": item.get("task_id"),
                "server_id": None,
                "status": "error",
                "error": f"Unknown operation: {operation}",
            }

    def _create(self, item: Dict[str, Any]) -> Dict[str, Any]:
        server_id = self._server_id_for(item) or f"srv_{next(self._ids)}"
        data = item.get("data") or {}
        now = to_iso(utc_now())
        record = {
            "id": server_id,
            "title": data.get("title", ""),
            "description": data.get("description") or "",
            "completed": bool(data.get("completed", False)),
            "created_at": data.get("created_at") or now,
            "updated_at": data.get("updated_at") or now,
            "is_deleted": False,
            "sync_status": "synced",
            "server_id": server_id,
            "last_synced_at": now,
        }
        self.tasks[server_id] = record
        self.client_to_server[item.get("task_id")] = server_id
        return {
            "client_id": item.get("task_id"),
            "server_id": server_id,
            "status": "success",
            "resolved_data": dict(record),
        }

    def _update(self, item: Dict[str, Any]) -> Dict[str, Any]:
        server_id = self._server_id_for(item)
        if server_id is None or server_id not in self.tasks:
            return self._create(item)

        stored = self.tasks[server_id]
        data = item.get("data") or {}
        incoming_at = parse_timestamp(data.get("updated_at"))
        stored_at = parse_timestamp(stored.get("updated_at"))
        if incoming_at is not None and stored_at is not None and stored_at > incoming_at:
            return {
                "client_id": item.get("task_id"),
                "server_id": server_id,
                "status": "conflict",
                "resolved_data": dict(stored),
            }

        for key in ("title", "description", "completed"):
            if key in data:
                stored[key] = data[key]
        stored["updated_at"] = data.get("updated_at") or to_iso(utc_now())
        stored["last_synced_at"] = to_iso(utc_now())
        return {
            "client_id": item.get("task_id"),
            "server_id": server_id,
            "status": "success",
            "resolved_data": dict(stored),
        }

    def _delete(self, item: Dict[str, Any]) -> Dict[str, Any]:
        server_id = self._server_id_for(item)
        if server_id is not None and server_id in self.tasks:
            self.tasks[server_id]["is_deleted"] = True
        return {
            "client_id": item.get("task_id"),
            "server_id": server_id,
            "status": "success",
            "resolved_data": None,
        }


def expected_checksum(items) -> str:
    """Recompute the client's batch checksum from the wire items."""
    return checksum_of_fields(
        (
            item.get("id"),
            item.get("task_id"),
            item.get("operation"),
            epoch_ms(parse_timestamp(item.get("created_at"))),
        )
        for item in items
    )


class MockAuthorityHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the mock remote authority."""

    state: AuthorityState = None

    def _send_json_response(self, status_code: int, data: dict):
        """Send a JSON response."""
        body = json.dumps(data).encode('utf-8')
        self.send_response(status_code)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _route(self) -> str:
        path = self.path.split('?', 1)[0]
        if path.startswith('/api/'):
            path = path[len('/api'):]
        return path

    def do_GET(self):
        """Handle GET requests."""
        route = self._route()
        if route == '/health':
            self._send_json_response(200, {'status': 'ok', 'timestamp': to_iso(utc_now())})
        elif route == '/tasks':
            self._send_json_response(200, {'tasks': list(self.state.tasks.values())})
        else:
            self._send_json_response(404, {'error': 'Not found'})

    def do_POST(self):
        """Handle POST requests."""
        if self._route() != '/batch':
            self._send_json_response(404, {'error': 'Not found'})
            return

        content_length = int(self.headers.get('Content-Length', 0))
        body = self.rfile.read(content_length)

        try:
            batch = json.loads(body.decode('utf-8'))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON: {e}")
            self._send_json_response(400, {'error': 'Invalid JSON'})
            return

        items = batch.get('items') if isinstance(batch, dict) else None
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            self._send_json_response(400, {'error': 'Invalid batch request: items array is required'})
            return

        sent_checksum = self.headers.get(CHECKSUM_HEADER)
        if sent_checksum is not None:
            try:
                computed = expected_checksum(items)
            except (AttributeError, TypeError, ValueError) as e:
                self._send_json_response(400, {'error': f'Malformed batch items: {e}'})
                return
            if computed != sent_checksum:
                logger.warning(f"Checksum mismatch: got {sent_checksum}, expected {computed}")
                self._send_json_response(400, {'error': 'Batch checksum mismatch'})
                return

        self.state.received_batches.append(batch)
        processed = [self.state.process(item) for item in items]
        logger.info(f"Processed batch of {len(items)} items")
        self._send_json_response(200, {'processed_items': processed})

    def log_message(self, format, *args):
        """Override to use Python logging instead of stderr."""
        logger.debug(f"{self.address_string()} - {format % args}")


def make_server(host: str = '127.0.0.1', port: int = 3000,
                state: Optional[AuthorityState] = None) -> HTTPServer:
    """Build (but do not start) a mock authority server. Port 0 picks a free port."""
    handler = type('BoundMockAuthorityHandler', (MockAuthorityHandler,), {
        'state': state or AuthorityState()
    })
    return ThreadingHTTPServer((host, port), handler)


def run_server(host: str = '0.0.0.0', port: int = 3000):
    """Run the mock remote authority until interrupted."""
    httpd = make_server(host, port)
    logger.info(f"Mock remote authority running on http://{host}:{port}")
    logger.info("Endpoints:")
    logger.info("  GET  /api/health   - Health check")
    logger.info("  GET  /api/tasks    - Authoritative task copies")
    logger.info("  POST /api/batch    - Submit a batch of mutations")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    finally:
        httpd.server_close()
