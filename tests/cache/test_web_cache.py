from pathlib import Path

import httpx
import pytest

from locator.cache import ContentCache
from locator.errors import CacheFetchError, FetchTimeoutError

from tests.infrastructure import FakeGit


def _client(routes: dict, calls: list | None = None) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, content=body)
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_cache(tmp_path: Path):
    def make(client: httpx.Client) -> ContentCache:
        return ContentCache(root=tmp_path / "cache", git=FakeGit(), http_client=client)
    return make


def test_download_maps_host_and_path(make_cache):
    cache = make_cache(_client({"https://example.com/a/b.dhall": b"let x = 1"}))
    result = cache.from_web("https://example.com/a/b.dhall")
    assert result.path == cache.root / "web" / "example.com" / "a" / "b.dhall"
    assert result.path.read_bytes() == b"let x = 1"
    assert result.status_code == 200
    assert result.size == len(b"let x = 1")


def test_every_call_downloads_again(make_cache):
    calls: list = []
    routes = {"https://example.com/a.json": b"1"}
    cache = make_cache(_client(routes, calls))
    cache.from_web("https://example.com/a.json")
    routes["https://example.com/a.json"] = b"2"
    result = cache.from_web("https://example.com/a.json")
    assert result.path.read_bytes() == b"2"
    assert len(calls) == 2
    assert cache.stats.downloads == 2


def test_port_and_empty_name(make_cache):
    cache = make_cache(_client({}))
    assert cache.web_path("http://example.com:8080/x/y.txt") == cache.root / "web" / "example.com_8080" / "x" / "y.txt"
    assert cache.web_path("https://example.com/") == cache.root / "web" / "example.com" / "index"
    assert cache.web_path("https://example.com/dir/") == cache.root / "web" / "example.com" / "dir" / "index"


def test_dot_dot_in_url_path_is_rejected(make_cache):
    cache = make_cache(_client({}))
    with pytest.raises(CacheFetchError):
        cache.web_path("https://example.com/a/%2e%2e/%2e%2e/etc/passwd")


def test_http_error_status_raises_and_keeps_nothing(make_cache):
    cache = make_cache(_client({}))
    with pytest.raises(CacheFetchError) as ei:
        cache.from_web("https://example.com/missing.json")
    assert "404" in str(ei.value)
    dest = cache.web_path("https://example.com/missing.json")
    assert not dest.exists()
    assert list(dest.parent.iterdir()) == []


def test_previous_copy_survives_failed_download(make_cache):
    routes = {"https://example.com/a.json": b"good"}
    cache = make_cache(_client(routes))
    first = cache.from_web("https://example.com/a.json")
    del routes["https://example.com/a.json"]
    with pytest.raises(CacheFetchError):
        cache.from_web("https://example.com/a.json")
    assert first.path.read_bytes() == b"good"


def test_timeout_maps_to_fetch_timeout_error(make_cache):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    cache = make_cache(httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(FetchTimeoutError) as ei:
        cache.from_web("https://example.com/slow.json")
    assert isinstance(ei.value, CacheFetchError)
    assert ei.value.operation == "download"


def test_transport_error_maps_to_fetch_error(make_cache):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    cache = make_cache(httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(CacheFetchError) as ei:
        cache.from_web("https://example.com/x.json")
    assert isinstance(ei.value.__cause__, httpx.ConnectError)


def test_cached_file_in_the_way_of_a_directory(make_cache):
    routes = {
        "https://example.com/a/b.json": b"{}",
        "https://example.com/a/b.json/c.json": b"{}",
    }
    cache = make_cache(_client(routes))
    cache.from_web("https://example.com/a/b.json")
    with pytest.raises(CacheFetchError) as ei:
        cache.from_web("https://example.com/a/b.json/c.json")
    assert isinstance(ei.value.__cause__, OSError)
    assert cache.stats.downloads == 1


def test_host_cannot_leave_web_tree(make_cache):
    cache = make_cache(_client({}))
    with pytest.raises(CacheFetchError):
        cache.web_path("https://../locks/x")
