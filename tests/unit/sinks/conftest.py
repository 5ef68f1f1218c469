"""
Fixtures for sink unit tests.
"""

import json

import httpx
import pytest

from chat_export.models import AttachmentDescriptor, ExportRecord


@pytest.fixture()
def records():
    return [
        ExportRecord(
            id=2,
            text="ça va?",
            reply_to=1,
            sent_at=1_600_000_002,
            sender_uid="uid-bob",
            sender_username="bob",
            device_id="dev-b",
        ),
        ExportRecord(
            id=1,
            text="[Attachment cat.png] cat",
            attachment=AttachmentDescriptor(path="attachments/cat.png", asset_type="image", filename="cat.png"),
            sent_at=1_600_000_001,
            sender_uid="uid-alice",
            device_id="dev-a",
            edited=True,
        ),
    ]


@pytest.fixture()
def es_backend():
    """Mock Elasticsearch REST endpoint that records requests."""
    calls = []
    state = {"bulk_errors": False, "down": False}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if state["down"]:
            raise httpx.ConnectError("connection refused", request=request)
        if request.method == "GET" and request.url.path == "/":
            return httpx.Response(200, json={"tagline": "You Know, for Search"})
        if request.url.path.endswith("/_bulk"):
            lines = [json.loads(l) for l in request.content.decode().splitlines() if l]
            items = []
            for action in lines[::2]:
                entry = {"_id": action["index"]["_id"], "status": 201}
                if state["bulk_errors"]:
                    entry = {**entry, "status": 400, "error": {"type": "mapper_parsing_exception"}}
                items.append({"index": entry})
            return httpx.Response(200, json={"errors": state["bulk_errors"], "items": items})
        if request.method == "PUT":
            return httpx.Response(201, json={"result": "created"})
        return httpx.Response(404)

    backend = httpx.MockTransport(handler)
    backend.calls = calls
    backend.state = state
    return backend
