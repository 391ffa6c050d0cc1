"""
Unit tests for CORS policy decisions.
"""

import pytest

from mcp_http_bridge.config.settings import CorsConfig
from mcp_http_bridge.transport.cors import CorsPolicy, decide


class TestCorsDecide:
    """Test the pure CORS decision function."""

    @pytest.mark.parametrize("origin", [None, "https://a.com", "https://evil.example"])
    def test_wildcard_always_allows_star(self, origin):
        """Wildcard allow-list ignores the request origin."""
        decision = decide(origin, CorsConfig(origins=["*"]))

        assert decision.allow_origin == "*"
        assert decision.headers()["Access-Control-Allow-Origin"] == "*"

    def test_wildcard_wins_over_explicit_entries(self):
        """Wildcard anywhere in the list still yields '*'."""
        decision = decide("https://a.com", CorsConfig(origins=["https://a.com", "*"]))

        assert decision.allow_origin == "*"

    def test_explicit_list_echoes_listed_origin(self):
        """A listed origin is echoed back verbatim."""
        decision = decide("https://a.com", CorsConfig(origins=["https://a.com"]))

        assert decision.headers()["Access-Control-Allow-Origin"] == "https://a.com"

    @pytest.mark.parametrize(
        "origin",
        ["https://b.com", "https://A.com", "https://a.com/", "http://a.com", None],
    )
    def test_explicit_list_omits_unlisted_origin(self, origin):
        """Anything not matching verbatim gets no allow-origin header."""
        decision = decide(origin, CorsConfig(origins=["https://a.com"]))

        assert decision.allow_origin is None
        assert "Access-Control-Allow-Origin" not in decision.headers()
        # Methods and headers are still advertised
        assert decision.headers()["Access-Control-Allow-Methods"] == "POST, OPTIONS"

    def test_credentials_header(self):
        """Credentials flag adds the allow-credentials header."""
        decision = decide("https://a.com", CorsConfig(origins=["https://a.com"], credentials=True))

        assert decision.headers()["Access-Control-Allow-Credentials"] == "true"

    def test_wildcard_with_credentials_is_not_validated(self):
        """The wildcard plus credentials combination is passed through as configured."""
        headers = decide("https://a.com", CorsConfig(origins=["*"], credentials=True)).headers()

        assert headers["Access-Control-Allow-Origin"] == "*"
        assert headers["Access-Control-Allow-Credentials"] == "true"

    def test_no_credentials_header_by_default(self):
        decision = decide("https://a.com", CorsConfig())

        assert "Access-Control-Allow-Credentials" not in decision.headers()

    def test_default_methods_and_headers(self):
        headers = decide(None, CorsConfig()).headers()

        assert headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
        assert headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"

    def test_custom_methods_and_headers(self):
        config = CorsConfig(allowed_methods=["POST"], allowed_headers=["Content-Type", "X-Trace"])
        headers = decide(None, config).headers()

        assert headers["Access-Control-Allow-Methods"] == "POST"
        assert headers["Access-Control-Allow-Headers"] == "Content-Type, X-Trace"

    def test_disabled_emits_nothing(self):
        """Disabled CORS produces no headers and refuses preflight."""
        decision = decide("https://a.com", CorsConfig(enabled=False, credentials=True))

        assert decision.headers() == {}
        assert not decision.allows_preflight


class TestCorsPolicy:
    """Test the configuration-bound policy."""

    def test_policy_delegates_to_decide(self):
        policy = CorsPolicy(CorsConfig(origins=["https://a.com"]))

        assert policy.enabled
        assert policy.decide("https://a.com").allow_origin == "https://a.com"
        assert policy.decide("https://b.com").allow_origin is None
