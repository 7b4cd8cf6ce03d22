"""Tests for RSS/website parsing and content tagging."""

from datetime import datetime, timezone

import pytest

from conftest import build_rss

from trendpress.scrape.parsers import (
    extract_metals,
    extract_symbols,
    parse_date,
    parse_rss,
    parse_website,
)


def test_parse_rss_entries():
    published = datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)
    text = build_rss(
        [
            {"title": "Gold climbs", "link": "https://a.example.com/1", "summary": "<p>Gold rose</p>", "published": published},
            {"title": "Markets open", "link": "https://a.example.com/2", "summary": "Stocks opened higher"},
        ]
    )

    entries = parse_rss(text)

    assert [e.title for e in entries] == ["Gold climbs", "Markets open"]
    assert entries[0].link == "https://a.example.com/1"
    assert "Gold rose" in entries[0].summary
    assert entries[0].published_at == published


def test_parse_rss_rejects_garbage():
    with pytest.raises(ValueError):
        parse_rss("this is not a feed <<<")


def test_parse_website_with_selectors():
    html = """
    <div class="eachStory"><h3><a href="/markets/one">Infosys shares jump</a></h3>
      <p>Strong quarter lifts IT names.</p><time datetime="2026-03-01T09:00:00Z"></time></div>
    <div class="eachStory"><h3><a href="/markets/one">Infosys shares jump</a></h3></div>
    <div class="eachStory"><p>No title here</p></div>
    """
    selectors = {"article": "div.eachStory", "title": "h3", "link": "h3 a", "summary": "p", "date": "time"}

    entries = parse_website(html, "https://news.example.com/markets", selectors)

    assert len(entries) == 1
    assert entries[0].link == "https://news.example.com/markets/one"
    assert entries[0].summary == "Strong quarter lifts IT names."
    assert entries[0].published_at == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_parse_date_handles_bad_input():
    assert parse_date("not a date at all") is None
    assert parse_date(None) is None
    assert parse_date("2026-03-01 10:00").tzinfo is not None


def test_extract_symbols_strips_exchange_suffix_and_stopwords():
    text = "INFY.NS and TCS gained while the RBI and SEBI met; TCS again"
    assert extract_symbols(text) == ["INFY", "TCS"]


def test_extract_symbols_keeps_short_tickers():
    assert extract_symbols("INFY and HDFC rallied") == ["INFY", "HDFC"]


def test_extract_metals_whole_words_only():
    assert extract_metals("Gold and SILVER rose; goldman was flat") == ["gold", "silver"]
