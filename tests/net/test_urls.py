from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

import pytest

from showroom.net.urls import build_url, freeze_query


def test_build_url_joins_relative_path_onto_base() -> None:
    assert build_url("https://api.example.com", "/auth/login") == "https://api.example.com/auth/login"


def test_build_url_keeps_absolute_urls() -> None:
    url = build_url("https://api.example.com", "http://other.local/x", {"a": 1})
    assert url == "http://other.local/x?a=1"


def test_build_url_omits_none_values() -> None:
    url = build_url("http://example.local", "/cars", {"brand": None, "page": 2, "q": None})
    assert url == "http://example.local/cars?page=2"
    assert "None" not in url
    assert "null" not in url


def test_build_url_stringifies_and_encodes_scalars() -> None:
    url = build_url(
        "http://example.local",
        "/search",
        {"q": "sports car & more", "featured": True, "limit": 10, "ratio": 0.5, "used": False},
    )
    pairs = parse_qsl(urlsplit(url).query)
    assert pairs == [
        ("q", "sports car & more"),
        ("featured", "true"),
        ("limit", "10"),
        ("ratio", "0.5"),
        ("used", "false"),
    ]
    assert "sports+car+%26+more" in url


def test_build_url_appends_to_existing_query() -> None:
    url = build_url("http://example.local", "/cars?sort=year", {"page": 3})
    assert url == "http://example.local/cars?sort=year&page=3"


def test_build_url_without_query_returns_plain_url() -> None:
    assert build_url("http://example.local", "/cars", {}) == "http://example.local/cars"
    assert build_url("http://example.local", "/cars", {"only": None}) == "http://example.local/cars"


def test_build_url_requires_base_for_relative_path() -> None:
    with pytest.raises(ValueError):
        build_url(None, "/cars")


def test_freeze_query_is_order_insensitive_and_drops_none() -> None:
    a = freeze_query({"b": 2, "a": "x", "c": None})
    b = freeze_query({"a": "x", "b": 2})
    assert a == b == (("a", "x"), ("b", "2"))
    assert freeze_query(None) == ()


def test_build_url_renders_whole_floats_as_integers() -> None:
    url = build_url("http://example.local", "/cars", {"price_max": 25000.0, "ratio": 1.5, "year": 2024})
    assert url == "http://example.local/cars?price_max=25000&ratio=1.5&year=2024"
    assert freeze_query({"price_max": 25000.0}) == freeze_query({"price_max": 25000})
