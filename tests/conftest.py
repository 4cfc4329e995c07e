"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach a real upstream MCP server
os.environ.setdefault("UPSTREAM_URL", "http://upstream.test/sse")
os.environ.setdefault("LOG_FORMAT", "text")
