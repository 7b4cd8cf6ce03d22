"""Scraping stage: source parsers and the Scraper."""

from .parsers import RawEntry, extract_metals, extract_symbols, parse_rss, parse_website
from .scraper import ScrapeResult, Scraper

__all__ = [
    "RawEntry",
    "ScrapeResult",
    "Scraper",
    "extract_metals",
    "extract_symbols",
    "parse_rss",
    "parse_website",
]
