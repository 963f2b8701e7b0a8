import asyncio
import base64

import httpx
import pytest
from fastapi import HTTPException
from google.api_core.exceptions import NotFound
from google.auth.exceptions import TransportError

from syllabot.services import storage_service
from syllabot.services.storage_service import fetch_syllabus, read_as_base64

PDF = b"%PDF-1.4 syllabus"


@pytest.fixture
def files(monkeypatch):
    """Serve fake storage downloads through httpx.MockTransport."""
    served = {"status": 200, "content-type": "application/pdf", "body": PDF}
    real_client = httpx.AsyncClient

    def handler(request):
        return httpx.Response(
            served["status"], content=served["body"], headers={"content-type": served["content-type"]}
        )

    monkeypatch.setattr(
        storage_service.httpx, "AsyncClient",
        lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw),
    )
    monkeypatch.setattr(storage_service, "get_download_url", lambda uri: f"https://files.test/{uri}")
    return served


def test_read_as_base64(files):
    data, mime = asyncio.run(read_as_base64("https://files.test/s.pdf"))
    assert base64.b64decode(data) == PDF
    assert mime == "application/pdf"


def test_fetch_syllabus_encodes_body(files):
    files["content-type"] = "application/pdf; charset=binary"
    syllabus = asyncio.run(fetch_syllabus("MATH108170.pdf"))
    assert base64.b64decode(syllabus.data) == PDF
    assert syllabus.mime_type == "application/pdf"


def test_octet_stream_is_treated_as_pdf(files):
    files["content-type"] = "application/octet-stream"
    assert asyncio.run(fetch_syllabus("MATH108170.pdf")).mime_type == "application/pdf"


def test_http_error_becomes_502(files):
    files["status"] = 403
    with pytest.raises(HTTPException) as exc:
        asyncio.run(fetch_syllabus("MATH108170.pdf"))
    assert exc.value.status_code == 502
    assert exc.value.detail == "Could not load the syllabus"


@pytest.mark.parametrize("error", [
    ValueError("Storage bucket name not specified"),
    TransportError("cannot sign with ADC credentials"),
    NotFound("no such object"),
])
def test_signing_failures_become_502(monkeypatch, error):
    def _fail(uri):
        raise error

    monkeypatch.setattr(storage_service, "get_download_url", _fail)
    with pytest.raises(HTTPException) as exc:
        asyncio.run(fetch_syllabus("MATH108170.pdf"))
    assert exc.value.status_code == 502


def test_open_chat_reports_storage_failure(client, monkeypatch):
    def _fail(uri):
        raise ValueError("Storage bucket name not specified")

    monkeypatch.setattr(storage_service, "get_download_url", _fail)
    res = client.post("/api/chat/sessions", json={"schoolID": "demo", "courseID": "math108"})
    assert res.status_code == 502
    assert res.json()["detail"] == "Could not load the syllabus"
