"""
Tests for cookie matching rules.

Covers:
- Netscape (version 0) suffix domain matching and the bare .local rule
- RFC 2965 (version 1) domain matching
- Path matching and default paths
- Effective origin reduction
"""

import pytest

from chat_bridge.cookies.matching import (
    default_path,
    domain_matches,
    effective_origin,
    is_secure_uri,
    netscape_domain_matches,
    path_matches,
    rfc_domain_matches,
)


# =============================================================================
# Netscape Domain Matching
# =============================================================================


class TestNetscapeDomainMatches:
    """Tests for the version 0 domain rule."""

    @pytest.mark.parametrize(
        "domain,host",
        [
            (".example.com", "www.example.com"),
            (".example.com", "x.y.example.com"),
            (".example.com", "example.com"),
            ("example.com", "example.com"),
            ("EXAMPLE.com", "example.COM"),
        ],
    )
    def test_matching_hosts(self, domain: str, host: str) -> None:
        assert netscape_domain_matches(domain, host) is True

    @pytest.mark.parametrize(
        "domain,host",
        [
            (".example.com", "notexample.com"),
            (".example.com", "notexample.org"),
            (".example.com", "other.com"),
            (".com", "example.com"),
            ("example.", "example"),
        ],
    )
    def test_non_matching_hosts(self, domain: str, host: str) -> None:
        assert netscape_domain_matches(domain, host) is False

    def test_bare_local_domain_matches_single_label_host(self) -> None:
        assert netscape_domain_matches(".local", "intranet") is True

    def test_bare_local_domain_does_not_match_dotted_host(self) -> None:
        assert netscape_domain_matches(".local", "www.example.com") is False

    def test_none_never_matches(self) -> None:
        assert netscape_domain_matches(None, "example.com") is False
        assert netscape_domain_matches(".example.com", None) is False


# =============================================================================
# RFC 2965 Domain Matching
# =============================================================================


class TestRfcDomainMatches:
    """Tests for the version 1 domain rule."""

    def test_one_label_prefix_matches(self) -> None:
        assert rfc_domain_matches(".example.com", "www.example.com") is True

    def test_multi_label_prefix_does_not_match(self) -> None:
        assert rfc_domain_matches(".example.com", "x.y.example.com") is False

    def test_host_local_suffix_matches_single_label_host(self) -> None:
        assert rfc_domain_matches("intranet.local", "intranet") is True

    def test_exact_host_matches(self) -> None:
        assert rfc_domain_matches("engine.example.com", "engine.example.com") is True


class TestDomainMatchesByVersion:
    """domain_matches picks the rule by cookie version."""

    def test_version_zero_uses_suffix_rule(self) -> None:
        assert domain_matches(".example.com", 0, "x.y.example.com") is True

    def test_version_one_uses_rfc_rule(self) -> None:
        assert domain_matches(".example.com", 1, "x.y.example.com") is False


# =============================================================================
# Paths and Origins
# =============================================================================


class TestPaths:
    """Tests for path helpers."""

    def test_cookie_without_path_matches_everything(self) -> None:
        assert path_matches(None, "/anything") is True

    def test_prefix_path_matches(self) -> None:
        assert path_matches("/bot", "/bot/endsession") is True

    def test_other_path_does_not_match(self) -> None:
        assert path_matches("/admin", "/bot") is False

    @pytest.mark.parametrize(
        "request_path,expected",
        [
            ("/bot/", "/bot/"),
            ("/bot/engine", "/bot/"),
            ("/engine", "/"),
            ("", "/"),
        ],
    )
    def test_default_path(self, request_path: str, expected: str) -> None:
        assert default_path(request_path) == expected


class TestEffectiveOrigin:
    """Tests for URI bucket keys."""

    def test_strips_path_query_fragment_and_port(self) -> None:
        assert effective_origin("https://Engine.Example.com:8443/bot/?x=1#f") == "http://engine.example.com"

    def test_same_origin_for_http_and_https(self) -> None:
        assert effective_origin("http://example.com/a") == effective_origin("https://example.com/b")

    def test_uri_without_host_is_unchanged(self) -> None:
        assert effective_origin("/relative/path") == "/relative/path"

    def test_secure_uri(self) -> None:
        assert is_secure_uri("https://example.com") is True
        assert is_secure_uri("http://example.com") is False
