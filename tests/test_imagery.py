import pytest
import requests

from beltline_nodes.imagery import build_request_url, fetch_images, resolve_api_key
from beltline_nodes.models import ImagingNode


class FakeResponse:
    def __init__(self, content=b"jpeg", status=200):
        self.content = content
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None):
        self.calls = []
        self.response = response or FakeResponse()

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        return self.response


def node(tmp_path, node_id=1, heading=26.6):
    coords = "33.7700,-84.3650"
    return ImagingNode(
        node_id=node_id,
        segment_id="101",
        access_id="7",
        coords=coords,
        heading=heading,
        path=str(tmp_path / f"{node_id}_{coords}_{heading:.1f}.jpg"),
    )


def test_request_url_encodes_location_and_heading(tmp_path):
    url = build_request_url(node(tmp_path), "KEY", base_url="https://example.test/streetview")
    assert url.startswith("https://example.test/streetview?")
    assert "location=33.7700%2C-84.3650" in url
    assert "heading=26.6" in url
    assert "key=KEY" in url


def test_fetch_downloads_missing_files(tmp_path):
    session = FakeSession()
    nodes = [node(tmp_path, 1), node(tmp_path, 2, heading=-90.0)]
    counts = fetch_images(nodes, "KEY", session=session, timeout=5)
    assert counts == {"downloaded": 2, "skipped": 0}
    assert (tmp_path / "2_33.7700,-84.3650_-90.0.jpg").read_bytes() == b"jpeg"
    assert session.calls[0][1]["heading"] == "26.6"
    assert session.calls[0][2] == 5


def test_fetch_skips_existing_files(tmp_path):
    existing = node(tmp_path, 1)
    with open(existing.path, "wb") as f:
        f.write(b"old")
    session = FakeSession()
    counts = fetch_images([existing], "KEY", session=session)
    assert counts == {"downloaded": 0, "skipped": 1}
    assert session.calls == []
    assert open(existing.path, "rb").read() == b"old"


def test_fetch_overwrite(tmp_path):
    existing = node(tmp_path, 1)
    with open(existing.path, "wb") as f:
        f.write(b"old")
    counts = fetch_images([existing], "KEY", session=FakeSession(), overwrite=True)
    assert counts["downloaded"] == 1
    assert open(existing.path, "rb").read() == b"jpeg"


def test_http_errors_propagate(tmp_path):
    session = FakeSession(FakeResponse(status=403))
    with pytest.raises(requests.HTTPError):
        fetch_images([node(tmp_path)], "KEY", session=session)
    assert not (tmp_path / "1_33.7700,-84.3650_26.6.jpg").exists()


def test_api_key_required(tmp_path, monkeypatch):
    with pytest.raises(ValueError):
        fetch_images([node(tmp_path)], "", session=FakeSession())
    monkeypatch.delenv("SV_KEY", raising=False)
    with pytest.raises(ValueError):
        resolve_api_key({"api_key_env": "SV_KEY"})
    monkeypatch.setenv("SV_KEY", "abc")
    assert resolve_api_key({"api_key_env": "SV_KEY"}) == "abc"
