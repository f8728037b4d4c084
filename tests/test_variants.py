from filterprobe.errors import ErrorCode
from filterprobe.variants import next_variants


def test_dns_failure_tries_www_only():
    assert next_variants("example.com", ErrorCode.DNS_NOT_RESOLVED, None, "https://example.com") == [
        "https://www.example.com",
        "http://www.example.com",
    ]
    assert next_variants("example.com", ErrorCode.DNS_NOT_RESOLVED, None, "https://www.example.com") == []


def test_connection_refused_prefers_plain_http():
    assert next_variants("example.com", ErrorCode.CONNECTION_REFUSED, None, "https://example.com") == [
        "http://example.com",
        "http://www.example.com",
        "https://www.example.com",
    ]
    assert next_variants("example.com", ErrorCode.CONNECTION_REFUSED, None, "http://example.com") == [
        "http://www.example.com",
        "https://www.example.com",
    ]
    assert next_variants("example.com", ErrorCode.CONNECTION_REFUSED, None, "http://www.example.com") == []


def test_timeout_variants():
    assert next_variants("example.com", ErrorCode.CONNECTION_TIMED_OUT, None, "https://example.com") == [
        "https://www.example.com",
        "http://example.com",
        "http://www.example.com",
    ]
    assert next_variants("example.com", ErrorCode.CONNECTION_TIMED_OUT, None, "https://www.example.com") == [
        "http://example.com",
        "http://www.example.com",
    ]


def test_blocked_and_tls_stop_immediately():
    assert next_variants("example.com", ErrorCode.BLOCKED_BY_CLIENT, None, "https://example.com") == []
    assert next_variants("example.com", ErrorCode.TLS_ERROR, None, "https://example.com") == []


def test_gateway_error_falls_back_to_http():
    assert next_variants("example.com", None, 520, "https://example.com") == [
        "http://example.com",
        "https://www.example.com",
        "http://www.example.com",
    ]
    assert next_variants("example.com", None, 520, "http://www.example.com") == []


def test_forbidden_subdomain_tries_base_domain():
    assert next_variants("shop.example.com", None, 403, "https://shop.example.com") == [
        "http://shop.example.com",
        "https://example.com",
        "https://www.example.com",
        "http://example.com",
        "http://www.example.com",
    ]


def test_default_row():
    assert next_variants("example.com", None, 404, "https://example.com") == [
        "https://www.example.com",
        "http://example.com",
        "http://www.example.com",
    ]
    assert next_variants("example.com", None, 404, "https://www.example.com") == [
        "http://example.com",
        "http://www.example.com",
    ]


def test_www_domain_is_not_doubled():
    assert next_variants("www.example.com", ErrorCode.DNS_NOT_RESOLVED, None, "https://www.example.com") == []


def test_https_only_drops_http_candidates():
    assert next_variants("example.com", ErrorCode.CONNECTION_REFUSED, None, "https://example.com", https_only=True) == [
        "https://www.example.com",
    ]
    assert next_variants("example.com", None, 404, "https://www.example.com", https_only=True) == []


def test_same_inputs_same_candidates():
    first = next_variants("example.com", None, 500, "https://example.com")
    second = next_variants("example.com", None, 500, "https://example.com")
    assert first == second
    first.append("mutated")
    assert next_variants("example.com", None, 500, "https://example.com") == second
