from __future__ import annotations

import hashlib

from gatehouse.session.fingerprint import RequestMetadata, compute_fingerprint, resolve_remote_addr

from .helpers.fakes import make_request


def test_fingerprint_is_sha256_of_fields_in_order():
    req = RequestMetadata(accept_language="fr", accept="text/html", user_agent="UA/1", remote_addr="198.51.100.4")
    assert compute_fingerprint(req) == hashlib.sha256(b"frtext/htmlUA/1198.51.100.4").hexdigest()


def test_missing_headers_become_wildcards():
    req = RequestMetadata(remote_addr="198.51.100.4")
    assert compute_fingerprint(req) == hashlib.sha256(b"***198.51.100.4").hexdigest()


def test_empty_header_is_not_a_missing_header():
    assert compute_fingerprint(RequestMetadata(accept="")) != compute_fingerprint(RequestMetadata(accept=None))


def test_fingerprint_stable_for_same_client():
    assert compute_fingerprint(make_request()) == compute_fingerprint(make_request())


def test_each_contributing_field_changes_fingerprint():
    base = compute_fingerprint(make_request())
    assert compute_fingerprint(make_request(Accept_Language="de-DE")) != base
    assert compute_fingerprint(make_request(Accept="application/json")) != base
    assert compute_fingerprint(make_request(User_Agent="curl/8.0")) != base
    assert compute_fingerprint(make_request(peer_addr="203.0.113.8")) != base


def test_volatile_headers_are_ignored():
    base = compute_fingerprint(make_request())
    assert compute_fingerprint(make_request(Accept_Encoding="gzip, br")) == base
    assert compute_fingerprint(make_request(Cookie="x=1")) == base
    assert compute_fingerprint(make_request(path="/other", method="POST")) == base


def test_headers_are_case_insensitive():
    a = RequestMetadata.from_headers({"USER-AGENT": "UA"}, peer_addr="192.0.2.1")
    b = RequestMetadata.from_headers({"user-agent": "UA"}, peer_addr="192.0.2.1")
    assert a == b


def test_forwarded_for_ignored_from_untrusted_peer():
    assert resolve_remote_addr("192.0.2.10", "198.51.100.1", trusted_proxies=[]) == "192.0.2.10"
    assert resolve_remote_addr("192.0.2.10", "198.51.100.1", trusted_proxies=["10.0.0.0/8"]) == "192.0.2.10"


def test_forwarded_for_walks_trusted_chain_from_the_right():
    proxies = ["10.0.0.0/8"]
    assert resolve_remote_addr("10.0.0.2", "198.51.100.1", proxies) == "198.51.100.1"
    # client-supplied left-most entry cannot override the hop the proxy saw
    assert resolve_remote_addr("10.0.0.2", "1.2.3.4, 198.51.100.1, 10.0.0.5", proxies) == "198.51.100.1"
    assert resolve_remote_addr("10.0.0.2", "198.51.100.1, garbage", proxies) == "198.51.100.1"


def test_forwarded_for_of_only_proxies_falls_back_to_peer():
    assert resolve_remote_addr("10.0.0.2", "10.0.0.3, 10.0.0.4", ["10.0.0.0/8"]) == "10.0.0.2"


def test_ipv6_and_missing_peer():
    assert resolve_remote_addr("::1", "2001:db8::5", ["::1/128"]) == "2001:db8::5"
    assert resolve_remote_addr(None, "198.51.100.1", ["10.0.0.0/8"]) == ""


def test_from_headers_resolves_through_proxies():
    req = RequestMetadata.from_headers(
        {"X-Forwarded-For": "198.51.100.1", "User-Agent": "UA"},
        peer_addr="10.1.2.3",
        trusted_proxies=["10.0.0.0/8"],
        method="post",
        path="/login",
    )
    assert req.remote_addr == "198.51.100.1"
    assert req.method == "POST"
    assert req.path == "/login"
