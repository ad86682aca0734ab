"""
Pytest configuration and fixtures for Leitstellenspiel scraper tests.

Provides:
- Mock HTTP responses
- A mocked pooled session patched into the client

Path: tests/scrapers/conftest.py
"""

import sys
import os

# Add project root to path for imports
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest
from unittest.mock import Mock, patch
import json


def make_response(status_code=200, text="", json_data=None, url="https://www.leitstellenspiel.de/"):
    """Build a mock requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.url = url
    response.text = text if json_data is None else json.dumps(json_data)
    response.content = response.text.encode("utf-8")
    if json_data is not None:
        response.json.return_value = json_data
    else:
        response.json.side_effect = ValueError("Expecting value")
    return response


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def mock_session():
    """Pooled session replaced by a Mock; configure session.get per test."""
    session = Mock()
    with patch("lss_scrapers.lss_client.get_http_session", return_value=session) as factory:
        session.factory = factory
        yield session
