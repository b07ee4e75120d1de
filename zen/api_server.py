"""Zen host API.

Host-embedding entry points plus a small JSON-over-HTTP server, so an
editor or browser playground can parse and compile Zen source without
shelling out to the CLI.

Usage:
    zen-server                 # Start on port 8000
    zen-server --port 3000

Endpoints:
    POST /parse      - {"source": ...} → AST JSON or {"error": ...}
    POST /compile    - {"source": ...} → base64 module or {"error": ...}
    GET  /health     - Health check
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import os
import time
import traceback
from collections import defaultdict
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from zen import __version__
from zen.compiler.codegen import lower
from zen.compiler.parser import parse
from zen.errors import CompileError

logger = logging.getLogger(__name__)

# ── Limits ──────────────────────────────────────────────────
MAX_BODY_SIZE = 1 * 1024 * 1024  # 1 MB max request body
MAX_SOURCE_LENGTH = 500_000       # 500K chars max source code
RATE_LIMIT_WINDOW = 60            # seconds
RATE_LIMIT_MAX = 60               # requests per window per IP
ALLOWED_ORIGINS = os.environ.get("ZEN_CORS_ORIGINS", "*")

# ── Rate limiter ────────────────────────────────────────────
_rate_buckets: Dict[str, list] = defaultdict(list)


def _rate_limit_check(client_ip: str) -> bool:
    """Return True if the request should be rejected (rate exceeded)."""
    now = time.monotonic()
    bucket = _rate_buckets[client_ip]
    _rate_buckets[client_ip] = [t for t in bucket if now - t < RATE_LIMIT_WINDOW]
    if len(_rate_buckets[client_ip]) >= RATE_LIMIT_MAX:
        return True
    _rate_buckets[client_ip].append(now)
    return False


# ── Host entry points ───────────────────────────────────────

def parse_source(source: str, filename: Optional[str] = None) -> Dict[str, Any]:
    """Parse source and return the serialized Module, or {"error": ...}."""
    try:
        return parse(source, filename).to_dict()
    except CompileError as e:
        return {"error": e.to_dict()}


def compile_source_b64(source: str, filename: Optional[str] = None) -> Dict[str, Any]:
    """Compile source and return the base64 module, or {"error": ...}."""
    try:
        wasm_module = lower(parse(source, filename))
    except CompileError as e:
        return {"error": e.to_dict()}
    data = wasm_module.finish()
    return {
        "wasm": base64.b64encode(data).decode("ascii"),
        "bytes": len(data),
        "exports": [f.name for f in wasm_module.compiled],
    }


class ZenAPIHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the Zen API."""

    def do_GET(self):
        client_ip = self.client_address[0]
        if _rate_limit_check(client_ip):
            self._json_response(429, {"error": "Rate limit exceeded. Try again later."})
            return

        path = urlparse(self.path).path.rstrip("/")
        if path == "/health":
            self._json_response(200, {"status": "ok", "version": __version__})
        else:
            self._json_response(404, {"error": "Not found", "endpoints": [
                "GET  /health", "POST /parse", "POST /compile",
            ]})

    def do_POST(self):
        client_ip = self.client_address[0]
        if _rate_limit_check(client_ip):
            self._json_response(429, {"error": "Rate limit exceeded. Try again later."})
            return

        path = urlparse(self.path).path.rstrip("/")

        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            content_length = -1
        if content_length < 0:
            self._json_response(400, {"error": "Invalid Content-Length"})
            return
        if content_length > MAX_BODY_SIZE:
            self._json_response(413, {"error": f"Request body too large. Maximum is {MAX_BODY_SIZE} bytes."})
            return
        body = self.rfile.read(content_length) if content_length else b""

        try:
            payload = json.loads(body.decode("utf-8")) if body else {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            self._json_response(400, {"error": "Invalid JSON"})
            return
        if not isinstance(payload, dict):
            self._json_response(400, {"error": "Request body must be a JSON object"})
            return

        source = payload.get("source", "")
        filename = payload.get("filename")
        if not isinstance(source, str):
            self._json_response(400, {"error": "'source' must be a string"})
            return
        if len(source) > MAX_SOURCE_LENGTH:
            self._json_response(413, {"error": f"Source code too large. Maximum is {MAX_SOURCE_LENGTH} characters."})
            return

        try:
            if path == "/parse":
                self._json_response(200, parse_source(source, filename))
            elif path == "/compile":
                self._json_response(200, compile_source_b64(source, filename))
            else:
                self._json_response(404, {"error": "Not found"})
        except Exception:
            # Full traceback server-side only
            logger.error("internal error: %s", traceback.format_exc())
            self._json_response(500, {
                "error": "Internal server error",
                "detail": "An unexpected error occurred during compilation.",
            })

    def _json_response(self, status: int, data: dict):
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Access-Control-Allow-Origin", ALLOWED_ORIGINS)
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("X-Content-Type-Options", "nosniff")
        self.end_headers()
        self.wfile.write(json.dumps(data).encode("utf-8"))

    def do_OPTIONS(self):
        """Handle CORS preflight."""
        self.send_response(200)
        self.send_header("Access-Control-Allow-Origin", ALLOWED_ORIGINS)
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)


def main():
    parser = argparse.ArgumentParser(description="Zen API Server")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    server = HTTPServer((args.host, args.port), ZenAPIHandler)
    print(f"Zen API running on http://{args.host}:{args.port}")
    print("   POST /parse      - Parse source to AST JSON")
    print("   POST /compile    - Compile source to a WebAssembly module")
    print("   GET  /health     - Health check")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down.")
        server.server_close()


if __name__ == "__main__":
    main()
