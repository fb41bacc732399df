import pytest

from autofix.models.finding import Finding
from autofix.parser.finding_normalizer import (
    dedupe_findings,
    normalize_finding,
    normalize_findings,
    strip_citations,
)


@pytest.mark.parametrize("raw, expected", [
    ({"title": "A"}, "A"),
    ({"Title": "B"}, "B"),
    ({"name": "C"}, "C"),
    ({"title": "  ", "name": "D"}, "D"),
    ({}, "Unlabeled issue"),
])
def test_title_aliases(raw, expected):
    assert normalize_finding(raw).title == expected


def test_field_aliases():
    finding = normalize_finding({
        "title": "Old price",
        "details": "Shows $10",
        "sourceUrl": "https://example.com/pricing",
        "manualInstructions": "Use $12",
    })
    assert finding == Finding(
        title="Old price",
        description="Shows $10",
        source_url="https://example.com/pricing",
        manual_instructions="Use $12",
    )

    assert normalize_finding({"title": "x", "link": "https://a"}).source_url == "https://a"
    assert normalize_finding({"title": "x", "instructions": "y"}).manual_instructions == "y"


def test_strip_citations():
    text = "Footer says 2023 citeturn6view0 and  [cite: turn2search1] needs update"
    assert strip_citations(text) == "Footer says 2023 and needs update"


def test_strip_citations_keeps_ordinary_words():
    text = "The page views counter and search box are broken"
    assert strip_citations(text) == text


def test_strip_citations_empty():
    assert strip_citations(None) is None
    assert strip_citations("citeturn0search3") is None


def test_normalize_findings_drops_non_mappings():
    findings = normalize_findings([{"title": "ok"}, "garbage", 42, None])
    assert [f.title for f in findings] == ["ok"]


def test_dedupe_against_store_and_batch():
    findings = [
        Finding(title="Known", source_url="https://a"),
        Finding(title="Known", source_url="https://b"),
        Finding(title="New", source_url=None),
        Finding(title="New", source_url=None),
    ]

    fresh = dedupe_findings(findings, {("Known", "https://a")})

    assert [f.dedup_key for f in fresh] == [("Known", "https://b"), ("New", None)]


def test_finding_to_draft():
    draft = Finding(title="T", description="D", source_url="https://a").to_draft()
    assert draft.title == "T"
    assert draft.description == "D"
    assert draft.manual_instructions is None
