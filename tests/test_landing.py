import asyncio

import pytest
from fastapi import HTTPException

from syllabot.services.storage_service import _split_uri, fetch_syllabus, get_download_url


def test_list_schools(client):
    res = client.get("/api/schools")
    assert res.status_code == 200
    schools = {s["id"]: s for s in res.json()}
    assert schools["demo"]["name"] == "Demo High"
    assert schools["demo"]["location"] == "Springfield"
    assert schools["demo"]["manage_url"] == "/management?schoolID=demo"
    assert schools["north side"]["location"] == ""
    assert schools["north side"]["manage_url"] == "/management?schoolID=north%20side"


def test_root_lists_schools(client):
    body = client.get("/").json()
    assert body["message"] == "Syllabot API"
    assert len(body["schools"]) == 2


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_split_storage_uri():
    assert _split_uri("gs://bucket/dir/file.pdf") == ("bucket", "dir/file.pdf")
    assert _split_uri("/MATH108170.pdf") == (None, "MATH108170.pdf")


def test_http_urls_pass_through():
    assert get_download_url("https://example.com/s.pdf") == "https://example.com/s.pdf"


def test_course_without_syllabus():
    with pytest.raises(HTTPException) as exc:
        asyncio.run(fetch_syllabus(""))
    assert exc.value.status_code == 404
