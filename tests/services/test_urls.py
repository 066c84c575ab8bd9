from __future__ import annotations

from portal.services.urls import UrlEntry, effective_port, explicit_port, load_urls, sort_entries


def test_explicit_port_ignores_numbers_in_path() -> None:
    assert explicit_port("http://localhost:4000/v1:9000") == 4000
    assert explicit_port("https://example.com/build:1234") is None
    assert explicit_port("localhost:5000") == 5000


def test_effective_port_uses_scheme_defaults() -> None:
    assert effective_port("https://example.com") == 443
    assert effective_port("http://example.com/app") == 80
    assert effective_port("ftp://example.com") is None


def test_unknown_types_sort_last_with_port_tiebreak() -> None:
    entries = [
        UrlEntry(type="custom", url="http://localhost:1001", port=1001),
        UrlEntry(type="main", url="http://localhost:4000", port=4000),
        UrlEntry(type="main", url="http://localhost:3000", port=3000),
        UrlEntry(type="docker", url="http://localhost:8080", port=8080),
    ]

    assert [entry.port for entry in sort_entries(entries)] == [8080, 3000, 4000, 1001]


def test_load_urls_tolerates_malformed_blobs() -> None:
    assert load_urls(None) == []
    assert load_urls("{broken") == []
    assert load_urls('{"type": "main"}') == []


def test_load_urls_fills_label_and_port() -> None:
    entries = load_urls('[{"type": "staging", "url": "http://localhost:4400"}, "junk"]')

    assert len(entries) == 1
    assert entries[0].label == "staging"
    assert entries[0].port == 4400
