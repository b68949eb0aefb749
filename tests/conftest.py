"""Shared fixtures: HAR document builders and a batch of four sample export files."""

import json

import pytest

BASE_URL = "https://business.facebook.com/events_manager2/api"


def capture(body, url: str = BASE_URL, sentinel: bool = True) -> dict:
    """One HAR entry whose response text is ``body`` (JSON-encoded unless already a str)."""
    if isinstance(body, str):
        text = body
    else:
        text = json.dumps(body)
        if sentinel:
            text = "for (;;);" + text
    return {
        "request": {"method": "GET", "url": url},
        "response": {"status": 200, "content": {"mimeType": "application/json", "text": text}},
    }


def har(*captures) -> dict:
    return {"log": {"version": "1.2", "entries": list(captures)}}


def count_item(event_name, method, count) -> dict:
    return {"keys": [event_name, method], "timeline": [[1715731200, count]]}


@pytest.fixture
def setup_quality_doc() -> dict:
    purchase = {
        "payload": {
            "data": {
                "event_name": "Purchase",
                "compositeScore": 0.755,
                "emqRating": {"rating": "GOOD"},
                "matchKeyFeedback": [
                    {"identifier": "email", "coverage": {"percentage": 92.5}, "issues": []},
                    {
                        "identifier": "phone",
                        "coverage": {"percentage": 40},
                        "issues": [{"issueCategory": "LOW_COVERAGE", "potentialScoreIncrease": 0.5}],
                    },
                    {"identifier": "ip_address", "coverage": {"percentage": 100}},
                ],
                "recommendations": [{"identifier": "email", "category": "HASH_EMAIL"}],
                "ruleBasedRecommendations": {
                    "recommendations": [{"identifier": "email", "category": "NORMALIZE_EMAIL"}]
                },
            }
        }
    }
    add_to_cart = {"payload": {"data": {"compositeScore": 0.6, "emqRating": {"rating": "OK"}}}}
    return har(
        capture(purchase),
        capture(add_to_cart, url=f"{BASE_URL}/quality?event_name=AddToCart&days=7"),
        capture("for (;;);{not json"),
    )


@pytest.fixture
def event_count_doc() -> dict:
    body = {
        "payload": {
            "data": [
                count_item("Purchase", "WEB_ONLY", 120),
                count_item("Purchase", "SERVER_ONLY", 90),
                count_item("AddToCart", "WEB_ONLY", 100),
                count_item("AddToCart", "SERVER_ONLY", 60),
                count_item("ViewContent", "WEB_ONLY", 50),
                {"keys": ["Broken"], "timeline": []},
            ]
        }
    }
    return har(capture(body))


@pytest.fixture
def arc_doc() -> dict:
    body = {
        "payload": {
            "data": [
                {"eventName": "Purchase", "additionalConversions": 0.0123, "hasDedupeIssue": False},
                {"eventName": "Lead", "additionalConversions": 0.5, "hasDedupeIssue": True},
                {"additionalConversions": 0.2},
            ]
        }
    }
    return har(capture(body, sentinel=False))


@pytest.fixture
def dedup_doc() -> dict:
    purchase = {
        "payload": {
            "eventName": "Purchase",
            "dedupeKeyStats": [
                {"dedupeKey": "event_id", "serverCoverage": 95, "browserCoverage": 90, "overlap": 88},
                {"dedupeKey": "fbp", "serverCoverage": 70, "browserCoverage": 99, "overlap": None},
            ],
        }
    }
    add_to_cart = {
        "payload": {
            "data": {
                "dedupe": {
                    "dedupeKeyStats": {
                        "external_id": {"serverCoverage": 60, "browserCoverage": 55, "overlap": 42},
                    }
                }
            }
        }
    }
    return har(
        capture(purchase),
        capture(add_to_cart, url=f"{BASE_URL}/dedupe?event_name=AddToCart"),
    )


@pytest.fixture
def har_files(tmp_path, setup_quality_doc, event_count_doc, arc_doc, dedup_doc) -> list[str]:
    """The four sample exports written to disk, deliberately out of merge order."""
    files = {
        "deduplication.har": dedup_doc,
        "my_setup_quality_export.har": setup_quality_doc,
        "additional_attributed_conversions.har": arc_doc,
        "new_har_event_count (1).har": event_count_doc,
    }
    paths = []
    for name, doc in files.items():
        path = tmp_path / name
        path.write_text(json.dumps(doc), encoding="utf-8")
        paths.append(str(path))
    return paths
