"""Tests for deterministic article enrichment."""

from conftest import make_item

from trendpress.generate import enrich


def test_clean_markdown_strips_formatting():
    text = "Article: ## Heading\n- **Bold** point\n1. [link](https://x.example.com) and `code`\n\n\n\n> quoted"
    assert enrich.clean_markdown(text) == "Bold point\nlink and code\n\nquoted"


def test_clean_title_keeps_heading_text():
    assert enrich.clean_title("# Gold surges to record high") == "Gold surges to record high"
    assert enrich.clean_title("## **Rates** hold\nsteady ") == "Rates hold steady"
    assert enrich.clean_title("#") == ""


def test_clip_adds_ellipsis_only_when_cut():
    assert enrich.clip("short", 10) == "short"
    clipped = enrich.clip("a" * 30, 10)
    assert clipped == "aaaaaaa..."
    assert len(clipped) == 10


def test_summarize_uses_first_paragraph():
    body = "First   paragraph here.\n\nSecond paragraph."
    assert enrich.summarize(body) == "First paragraph here."


def test_default_key_points_from_long_sentences():
    body = "Short. This sentence is definitely long enough to count. Another sentence that easily qualifies too!"
    assert enrich.default_key_points(body) == [
        "This sentence is definitely long enough to count",
        "Another sentence that easily qualifies too",
    ]


def test_extract_keywords_ranks_by_frequency_then_first_seen():
    text = "Rates rates RATES inflation inflation growth with this that"
    assert enrich.extract_keywords(text, limit=3) == ["rates", "inflation", "growth"]


def test_extract_entities_prefers_tagged_instruments():
    members = [make_item("a", symbols=["infy"], metals=["gold"])]
    body = "Reserve Bank officials met with Tata Motors executives."
    assert enrich.extract_entities(body, members) == ["INFY", "Gold", "Reserve Bank", "Tata Motors"]


def test_extract_topics():
    members = [make_item("a", metals=["silver"])]
    assert enrich.extract_topics("metals", members) == ["Metals", "Precious Metals", "Business", "Finance"]


def test_build_citations_dedups_urls():
    first = make_item("a", source_id="wire-a")
    citations = enrich.build_citations([first, first, make_item("b", source_id="wire-b")])
    assert [c.domain for c in citations] == ["wire-a.example.com", "wire-b.example.com"]
    assert citations[0].retrieved_at == first.scraped_at


def test_build_seo_respects_lengths():
    seo = enrich.build_seo("T" * 80, "word " * 100, "")
    assert len(seo.meta_title) == 60
    assert len(seo.meta_description) <= 160
    assert seo.keywords[0] == "word"


def test_default_faqs():
    faqs = enrich.default_faqs("Gold Price Updates", "Gold rose.\n\nMore detail.")
    assert faqs[0].answer == "Gold rose."
    assert len(faqs) == 2
