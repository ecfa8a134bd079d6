import asyncio
from datetime import date

import httpx
import pytest

from timelines.errors import PublishError
from timelines.publish import FilePublisher, HttpPublisher, PublishConfig, Publisher, load_publish_config_from_env

DAY = date(2020, 4, 8)


def test_file_publisher_writes_image_and_caption(tmp_path):
    publisher = FilePublisher(tmp_path / "out")
    pid = asyncio.run(publisher.publish(b"\x89PNG...", "Stand 08.04.2020", DAY))

    assert pid.endswith("chart-2020-04-08.png")
    assert (tmp_path / "out" / "chart-2020-04-08.png").read_bytes() == b"\x89PNG..."
    assert (tmp_path / "out" / "chart-2020-04-08.txt").read_text(encoding="utf-8") == "Stand 08.04.2020\n"


def test_file_publisher_failure_is_publish_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    with pytest.raises(PublishError):
        asyncio.run(FilePublisher(blocker).publish(b"img", "caption", DAY))


def test_http_publisher_posts_multipart_with_token():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["type"] = request.headers.get("Content-Type")
        seen["body"] = request.read()
        return httpx.Response(200, json={"id": 1247})

    publisher = HttpPublisher(
        "https://feed.example.test/posts", token="s3cret", transport=httpx.MockTransport(handler)
    )
    pid = asyncio.run(publisher.publish(b"PNGDATA", "Hallo Österreich", DAY))

    assert pid == "1247"
    assert seen["auth"] == "Bearer s3cret"
    assert seen["type"].startswith("multipart/form-data")
    assert b"PNGDATA" in seen["body"]
    assert "Hallo Österreich".encode("utf-8") in seen["body"]


def test_http_publisher_status_error():
    publisher = HttpPublisher(
        "https://feed.example.test/posts", transport=httpx.MockTransport(lambda r: httpx.Response(401))
    )
    with pytest.raises(PublishError, match="http_status:401"):
        asyncio.run(publisher.publish(b"img", "caption", DAY))


def test_http_publisher_bad_body():
    publisher = HttpPublisher(
        "https://feed.example.test/posts", transport=httpx.MockTransport(lambda r: httpx.Response(200, text="ok"))
    )
    with pytest.raises(PublishError, match="unexpected response body"):
        asyncio.run(publisher.publish(b"img", "caption", DAY))


def test_http_publisher_network_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    publisher = HttpPublisher("https://feed.example.test/posts", transport=httpx.MockTransport(handler))
    with pytest.raises(PublishError, match="network:ReadTimeout"):
        asyncio.run(publisher.publish(b"img", "caption", DAY))


def test_publish_config_from_env(monkeypatch):
    monkeypatch.setenv("COTWIT_PUBLISH_URL", " https://feed.example.test/posts ")
    monkeypatch.delenv("COTWIT_PUBLISH_TOKEN", raising=False)
    cfg = load_publish_config_from_env()
    assert cfg.url == "https://feed.example.test/posts"
    assert cfg.token is None


def test_http_publisher_requires_url():
    with pytest.raises(RuntimeError, match="COTWIT_PUBLISH_URL"):
        HttpPublisher.from_config(PublishConfig(url=None, token=None, timeout_s=1.0))


def test_publisher_base_is_abstract():
    with pytest.raises(TypeError):
        Publisher()

    class Incomplete(Publisher):
        pass

    with pytest.raises(TypeError):
        Incomplete()
