"""
Cookie matching rules.

Two domain-matching rules coexist:
- version 0 (Netscape) cookies use suffix matching, where a bare ".local"
  domain also matches any single-label host;
- version 1 (RFC 2965) cookies use strict domain matching, where the part
  of the host left of the domain must not contain a dot.
"""

from typing import Optional
from urllib.parse import urlsplit

LOCAL_DOMAIN = ".local"


def _embedded_dot(domain: str) -> int:
    dot = domain.find(".")
    if dot == 0:
        dot = domain.find(".", 1)
    return dot


def _has_valid_embedded_dot(domain: str) -> bool:
    dot = _embedded_dot(domain)
    return dot != -1 and dot != len(domain) - 1


def netscape_domain_matches(domain: Optional[str], host: Optional[str]) -> bool:
    """
    Match a cookie domain and a host the way Netscape-era browsers did.

    Examples:
        >>> netscape_domain_matches(".example.com", "www.example.com")
        True
        >>> netscape_domain_matches(".example.com", "example.com")
        True
        >>> netscape_domain_matches(".example.com", "notexample.com")
        False
    """
    if domain is None or host is None:
        return False
    is_local = domain.lower() == LOCAL_DOMAIN
    if not is_local and not _has_valid_embedded_dot(domain):
        return False
    if "." not in host and is_local:
        return True

    length_diff = len(host) - len(domain)
    if length_diff == 0:
        return host.lower() == domain.lower()
    if length_diff > 0:
        return host[length_diff:].lower() == domain.lower()
    if length_diff == -1:
        return domain.startswith(".") and host.lower() == domain[1:].lower()
    return False


def rfc_domain_matches(domain: Optional[str], host: Optional[str]) -> bool:
    """
    Match a cookie domain and a host per RFC 2965 section 1.

    Unlike the Netscape rule, "x.y.example.com" does not match
    ".example.com" because the remaining prefix "x.y" contains a dot.
    """
    if domain is None or host is None:
        return False
    is_local = domain.lower() == LOCAL_DOMAIN
    if not is_local and not _has_valid_embedded_dot(domain):
        return False
    if "." not in host and (is_local or domain.lower() == host.lower() + LOCAL_DOMAIN):
        return True

    length_diff = len(host) - len(domain)
    if length_diff == 0:
        return host.lower() == domain.lower()
    if length_diff > 0:
        prefix, suffix = host[:length_diff], host[length_diff:]
        return "." not in prefix and suffix.lower() == domain.lower()
    if length_diff == -1:
        return domain.startswith(".") and host.lower() == domain[1:].lower()
    return False


def domain_matches(domain: Optional[str], version: int, host: Optional[str]) -> bool:
    """Pick the matching rule by cookie version."""
    if version == 0:
        return netscape_domain_matches(domain, host)
    return rfc_domain_matches(domain, host)


def path_matches(cookie_path: Optional[str], request_path: str) -> bool:
    """A cookie without a path matches everything; otherwise prefix match."""
    if not cookie_path:
        return True
    return (request_path or "/").startswith(cookie_path)


def default_path(request_path: str) -> str:
    """Directory of the request path, used when Set-Cookie omits Path."""
    if not request_path or not request_path.startswith("/"):
        return "/"
    if request_path.endswith("/"):
        return request_path
    last_slash = request_path.rfind("/")
    return request_path[: last_slash + 1] if last_slash > 0 else "/"


def effective_origin(uri: str) -> str:
    """
    Reduce a URI to its cookie bucket key: "http://" plus the host.

    Scheme is normalized to http; port, path, query and fragment are dropped.
    A URI without a host is returned unchanged.
    """
    host = urlsplit(uri).hostname
    if host is None:
        return uri
    return f"http://{host}"


def is_secure_uri(uri: str) -> bool:
    return urlsplit(uri).scheme.lower() == "https"


def uri_host(uri: str) -> Optional[str]:
    return urlsplit(uri).hostname
