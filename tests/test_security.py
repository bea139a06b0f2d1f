import ipaddress

import pytest

from url_threat_scoring.core.security import (
    check_host_literal,
    is_internal_hostname,
    is_private_or_local_ip,
    parse_ip_literal,
)


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("127.0.0.1", "127.0.0.1"),
        ("127.1", "127.0.0.1"),
        ("2130706433", "127.0.0.1"),
        ("0x7f000001", "127.0.0.1"),
        ("0177.0.0.1", "127.0.0.1"),
        ("[::1]", "::1"),
        ("[::ffff:10.0.0.1]", "::ffff:a00:1"),
    ],
)
def test_parse_ip_literal_accepts_legacy_forms(host, expected):
    assert parse_ip_literal(host) == ipaddress.ip_address(expected)


def test_parse_ip_literal_ignores_dns_names():
    assert parse_ip_literal("example.com") is None
    assert parse_ip_literal("1.2.3.4.5") is None
    assert parse_ip_literal("") is None


@pytest.mark.parametrize(
    "address",
    [
        "10.0.0.5",
        "172.16.3.4",
        "192.168.1.1",
        "127.0.0.1",
        "169.254.169.254",
        "100.64.0.1",
        "192.0.2.10",
        "198.18.0.1",
        "224.0.0.1",
        "0.0.0.0",
        "::1",
        "fe80::1",
        "fc00::1",
        "2001:db8::1",
        "::ffff:127.0.0.1",
    ],
)
def test_non_global_addresses_are_private(address):
    assert is_private_or_local_ip(address) is True


def test_public_addresses_are_not_private():
    assert is_private_or_local_ip("93.184.216.34") is False
    assert is_private_or_local_ip("2606:4700:4700::1111") is False
    assert is_private_or_local_ip("not-an-ip") is False


def test_internal_hostnames():
    assert is_internal_hostname("localhost") is True
    assert is_internal_hostname("printer.local") is True
    assert is_internal_hostname("db.internal") is True
    assert is_internal_hostname("router.home.arpa") is True
    assert is_internal_hostname("intranet") is True
    assert is_internal_hostname("example.com") is False


def test_check_host_literal_reasons():
    assert check_host_literal("") == "missing_host"
    assert check_host_literal("10.0.0.5") == "private_network_blocked"
    assert check_host_literal("0x7f000001") == "private_network_blocked"
    assert check_host_literal("localhost") == "internal_hostname_blocked"
    assert check_host_literal("example.com") is None
    assert check_host_literal("8.8.8.8") is None
    assert check_host_literal("10.0.0.5", allow_private=True) is None
