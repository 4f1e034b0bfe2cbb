import httpx
import pytest

from link_preview.errors import UnsafeUrlError
from link_preview.services.url_guard import (
    is_private_host,
    is_safe_url,
    parse_ip_literal,
    validate_url,
)


@pytest.mark.parametrize(
    "url",
    [
        "",
        "not a url",
        "ftp://example.com/file",
        "javascript:alert(1)",
        "http://localhost:8000/",
        "http://api.localhost/",
        "http://service.internal/",
        "http://printer.local/",
        "http://127.0.0.1/",
        "http://0.0.0.0/",
        "http://10.1.2.3/",
        "http://172.16.0.1/",
        "http://172.31.255.255/",
        "http://192.168.1.10/admin",
        "http://169.254.169.254/latest/meta-data",
        "http://224.0.0.1/",
        "http://[::1]/",
        "http://[fe80::1]/",
        "http://[fd12:3456::1]/",
        "http://[fe9a::1]/",
        "http://[febf::1]/",
        "http://[::ffff:127.0.0.1]/",
        "http://2130706433/",
        "http://0x7f000001/",
        "http://0177.0.0.1/",
        "http://017700000001/",
        "http://0xa9.0xfe.0xa9.0xfe/",
        "http://0x7f.0.0.1/",
    ],
)
def test_rejects_unsafe_urls(url):
    with pytest.raises(UnsafeUrlError):
        validate_url(url)
    assert not is_safe_url(url)


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/article",
        "http://172.32.0.1/",
        "http://8.8.8.8/",
        "http://[2606:4700::1111]/",
        "https://febreze.com/",
        "https://fdroid.org/",
        "https://10minutemail.com/",
    ],
)
def test_accepts_public_urls(url):
    assert is_safe_url(url)


def test_normalizes_scheme_host_and_path():
    assert validate_url("HTTPS://Example.COM") == "https://example.com/"
    assert validate_url("https://example.com/a?b=1") == "https://example.com/a?b=1"


def test_rejection_reason_is_exposed():
    with pytest.raises(UnsafeUrlError) as excinfo:
        validate_url("ftp://example.com")
    assert excinfo.value.reason == "Only HTTP(S) URLs allowed"
    assert excinfo.value.url == "ftp://example.com"


def test_is_private_host_ignores_public_names_with_private_looking_prefixes():
    assert not is_private_host("fcbarcelona.com")
    assert is_private_host("fc00::1")


async def test_client_hook_blocks_private_targets_before_sending(make_client):
    sent = []

    def handler(request):
        sent.append(request.url)
        return httpx.Response(200)

    client = make_client(handler)
    with pytest.raises(UnsafeUrlError):
        await client.get("http://127.0.0.1/secret")
    assert sent == []


async def test_client_hook_blocks_redirects_into_private_network(make_client):
    sent = []

    def handler(request):
        sent.append(str(request.url))
        return httpx.Response(302, headers={"location": "http://169.254.169.254/"})

    client = make_client(handler)
    with pytest.raises(UnsafeUrlError):
        await client.get("https://example.com/redirect")
    assert sent == ["https://example.com/redirect"]


@pytest.mark.parametrize(
    "host, expected",
    [
        ("2130706433", "127.0.0.1"),
        ("0x7f000001", "127.0.0.1"),
        ("0177.0.0.1", "127.0.0.1"),
        ("10.1", "10.0.0.1"),
        ("fe80::1", "fe80::1"),
        ("example.com", None),
    ],
)
def test_parse_ip_literal_accepts_legacy_ipv4_spellings(host, expected):
    address = parse_ip_literal(host)
    assert (str(address) if address is not None else None) == expected


async def test_client_hook_blocks_numeric_loopback_hosts(make_client):
    sent = []

    def handler(request):
        sent.append(request.url)
        return httpx.Response(200)

    client = make_client(handler)
    with pytest.raises(UnsafeUrlError):
        await client.get("http://0x7f.0.0.1/admin")
    assert sent == []
