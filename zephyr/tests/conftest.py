# zephyr/tests/conftest.py
"""
Pytest configuration and fixtures for the Zephyr SDK tests.

HTTP traffic is mocked with respx; no test reaches a real backend.
Timeout tests use a local server that trickles its response body.
"""

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from zephyr import ZephyrClient
from zephyr.auth import AuthTokenManager, StaticTokenProvider
from zephyr.config import load_config
from zephyr.http import HttpClient

BASE_URL = "http://test.local"

CONFIG_ENV_VARS = [
    "ZEPHYR_ENV",
    "ZEPHYR_API_URL",
    "ZEPHYR_API_PREFIX",
    "ZEPHYR_API_KEY",
    "ZEPHYR_TIMEOUT",
    "ZEPHYR_CONFIG",
    "ZEPHYR_LOG_LEVEL",
    "EXPO_PUBLIC_API_URL",
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "SUPABASE_ANON_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of config resolution."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("zephyr.config.load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setattr("zephyr.config._dotenv_loaded", True)


@pytest.fixture
def http():
    """Low-level client with a static bearer token."""
    client = HttpClient(
        base_url=BASE_URL,
        auth=AuthTokenManager(StaticTokenProvider("test-token")),
    )
    yield client
    client.close()


@pytest.fixture
def client():
    """Create a test client."""
    config = load_config(api_url=BASE_URL, api_key="test-token")
    with ZephyrClient(config=config) as c:
        yield c


@pytest.fixture
def mock_task():
    """Sample task data."""
    return {
        "id": "task-1",
        "type": "task",
        "content": {
            "title": "Write quarterly report",
            "description": "Draft and circulate",
            "status": "pending",
            "priority": "high",
            "progress": 10,
            "estimated_duration": 90,
            "subtask_order": 0,
        },
        "tags": ["work", "writing"],
        "category": {"id": "cat-1", "name": "Work", "color": "#3B82F6"},
        "created_at": "2024-03-10T09:00:00Z",
        "updated_at": "2024-03-11T10:00:00Z",
    }


@pytest.fixture
def mock_memory():
    """Sample memory data."""
    return {
        "id": "mem-1",
        "title": "Morning walk",
        "note": "Clear head after the walk",
        "memory_type": "reflection",
        "tags": ["health"],
        "importance_level": "medium",
        "is_highlight": True,
        "mood": 7,
        "captured_at": "2024-03-12T07:30:00Z",
        "created_at": "2024-03-12T07:31:00Z",
        "updated_at": "2024-03-12T07:31:00Z",
    }


SLOW_BODY = b"x" * 10
SLOW_BYTE_DELAY = 0.2


class _TrickleHandler(BaseHTTPRequestHandler):
    """Sends headers at once, then the body one byte at a time."""

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(SLOW_BODY)))
        self.end_headers()
        for i in range(len(SLOW_BODY)):
            try:
                self.wfile.write(SLOW_BODY[i:i + 1])
                self.wfile.flush()
            except (BrokenPipeError, ConnectionResetError):
                return
            time.sleep(SLOW_BYTE_DELAY)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def slow_server(monkeypatch):
    """Base URL of a local server taking about 2s to send a 10 byte body."""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TrickleHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()
