from linkcrawler.classifier import DomainClassifier
from linkcrawler.frontier import Frontier
from linkcrawler.metadata import MetadataStore, merge_unique
from linkcrawler.types import ExtractedPage, MetadataRecord


def _store() -> MetadataStore:
    frontier = Frontier("ex.com", DomainClassifier(["https://ex.com/"]))
    return MetadataStore(canonicalize=frontier.canonicalize)


def test_merge_unique_preserves_first_occurrence():
    assert merge_unique(["a", "b"], ["b", "c", "a", ""]) == ["a", "b", "c"]


def test_first_visit_creates_record_with_canonical_anchors():
    store = _store()
    page = ExtractedPage(
        anchors=["http://ex.com/a#x", "https://ex.com/a", "https://other.com/y#z", "not a url"],
        meta_fields={"title": "Home", "description": "Welcome"},
    )

    record = store.merge_visit(
        "https://ex.com/",
        page=page,
        resources={"image": ["https://ex.com/logo.png"]},
        content_hash="abc",
    )

    assert record.title == "Home"
    assert record.anchors == ["https://ex.com/a", "https://other.com/y"]
    assert record.redirected_from == []
    assert record.hash == "abc"
    assert record.resources == {"image": ["https://ex.com/logo.png"]}


def test_later_visit_merges_lineage_and_anchors_only():
    store = _store()
    store.merge_visit(
        "https://ex.com/new",
        redirect_chain=["https://ex.com/old"],
        page=ExtractedPage(anchors=["https://ex.com/a"], meta_fields={"title": "First"}),
        content_hash="h1",
    )

    record = store.merge_visit(
        "https://ex.com/new",
        redirect_chain=["https://ex.com/older", "https://ex.com/old", "https://ex.com/new"],
        page=ExtractedPage(anchors=["https://ex.com/b", "https://ex.com/a"], meta_fields={"title": "Second"}),
        content_hash="h2",
        lighthouse={"seo": 0.9},
    )

    assert record.title == "First"
    assert record.hash == "h1"
    assert record.redirected_from == ["https://ex.com/old", "https://ex.com/older"]
    assert record.anchors == ["https://ex.com/a", "https://ex.com/b"]
    # Scores were never collected for this record, so the first ones are kept.
    assert record.lighthouse == {"seo": 0.9}


def test_covered_urls_include_redirect_sources():
    store = _store()
    store.merge_visit("https://ex.com/new", redirect_chain=["https://ex.com/old"])

    assert store.covered_urls() == {"https://ex.com/new", "https://ex.com/old"}


def test_json_round_trip_keeps_flat_layout():
    store = _store()
    store.merge_visit(
        "https://ex.com/",
        page=ExtractedPage(anchors=["https://ex.com/a"], meta_fields={"title": "Home", "og:title": "OG"}),
        resources={"script": ["https://ex.com/app.js"]},
        content_hash="abc",
    )

    payload = store.to_json()
    assert payload["https://ex.com/"] == {
        "title": "Home",
        "og:title": "OG",
        "script": ["https://ex.com/app.js"],
        "redirectedFrom": [],
        "anchors": ["https://ex.com/a"],
        "hash": "abc",
    }

    restored = MetadataStore.from_json(payload)
    record = restored.get("https://ex.com/")
    assert isinstance(record, MetadataRecord)
    assert record.meta_fields == {"title": "Home", "og:title": "OG"}
    assert record.resources == {"script": ["https://ex.com/app.js"]}


def test_to_json_returns_independent_copies():
    store = _store()
    store.merge_visit("https://ex.com/", page=ExtractedPage(anchors=["https://ex.com/a"]))

    payload = store.to_json()
    payload["https://ex.com/"]["anchors"].append("https://ex.com/mutated")

    assert store.get("https://ex.com/").anchors == ["https://ex.com/a"]
