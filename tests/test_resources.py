"""Unit tests for resource loading.

WHY: Images come from the host's resolver, from disk (CLI), or over
HTTP. Every failure mode (missing file, raising resolver, HTTP error,
slow server) must end in None so the scanner can place a placeholder.

HOW: Remote fetches run against httpx.MockTransport; the local resolver
runs against a tmp_path tree. Async code runs via asyncio.run().
"""

import asyncio
import threading

import httpx
import pytest

from word_converter.resources import LocalResourceResolver, RemoteFetcher, ResourceLoader, is_remote_url


def _transport(routes):
    def handler(request):
        status, body = routes.get(str(request.url), (404, b""))
        return httpx.Response(status, content=body)

    return httpx.MockTransport(handler)


class TestRemoteFetcher:
    def test_is_remote_url(self):
        assert is_remote_url("https://x.example/a.png")
        assert is_remote_url("HTTP://x.example/a.png")
        assert not is_remote_url("folder/a.png")
        assert not is_remote_url("ftp://x.example/a.png")

    def test_fetch_success_and_failure(self):
        transport = _transport({"https://img.example/a.png": (200, b"bytes")})

        async def go():
            async with RemoteFetcher(transport=transport) as fetcher:
                return (
                    await fetcher.fetch("https://img.example/a.png"),
                    await fetcher.fetch("https://img.example/missing.png"),
                )

        assert asyncio.run(go()) == (b"bytes", None)

    def test_transport_error_is_none(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async def go():
            async with RemoteFetcher(transport=httpx.MockTransport(handler)) as fetcher:
                return await fetcher.fetch("https://down.example/a.png")

        assert asyncio.run(go()) is None

    def test_requires_context_manager(self):
        with pytest.raises(RuntimeError):
            asyncio.run(RemoteFetcher().fetch("https://x.example/a.png"))


class TestResourceLoader:
    def test_routes_remote_and_local(self):
        transport = _transport({"https://img.example/a.png": (200, b"remote")})

        async def resolver(link):
            return b"local" if link == "a.png" else None

        async def go():
            async with ResourceLoader(resolver, transport=transport) as loader:
                return await loader.load("https://img.example/a.png"), await loader.load("a.png")

        assert asyncio.run(go()) == (b"remote", b"local")

    def test_resolver_exceptions_are_not_found(self):
        def sync_failure(link):
            raise ValueError("bad link")

        async def async_failure(link):
            raise KeyError(link)

        async def go():
            results = []
            for resolver in (sync_failure, async_failure):
                async with ResourceLoader(resolver) as loader:
                    results.append(await loader.load("a.png"))
            return results

        assert asyncio.run(go()) == [None, None]

    def test_timeout_is_not_found(self):
        async def slow(link):
            await asyncio.sleep(5)
            return b"late"

        async def go():
            async with ResourceLoader(slow, timeout_s=0.01) as loader:
                return await loader.load("a.png")

        assert asyncio.run(go()) is None

    def test_without_resolver(self):
        async def go():
            async with ResourceLoader() as loader:
                return await loader.load("a.png"), await loader.load("   ")

        assert asyncio.run(go()) == (None, None)


class TestLocalResourceResolver:
    @pytest.fixture
    def vault(self, tmp_path):
        (tmp_path / "notes").mkdir()
        (tmp_path / "notes" / "here.png").write_bytes(b"here")
        (tmp_path / "assets" / "deep").mkdir(parents=True)
        (tmp_path / "assets" / "deep" / "far away.png").write_bytes(b"far")
        (tmp_path / "outside.png").write_bytes(b"root")
        return tmp_path

    def test_relative_to_note(self, vault):
        resolver = LocalResourceResolver(vault / "notes", vault)
        assert asyncio.run(resolver("here.png")) == b"here"

    def test_found_by_name_anywhere_in_vault(self, vault):
        resolver = LocalResourceResolver(vault / "notes", vault)
        assert asyncio.run(resolver("far%20away.png")) == b"far"

    def test_relative_to_vault_root(self, vault):
        resolver = LocalResourceResolver(vault / "notes", vault)
        assert asyncio.run(resolver("assets/deep/far away.png")) == b"far"

    def test_cannot_escape_vault(self, vault):
        resolver = LocalResourceResolver(vault / "notes")
        assert resolver.find("../outside.png") is None

    def test_missing_file(self, vault):
        resolver = LocalResourceResolver(vault / "notes", vault)
        assert asyncio.run(resolver("nope.png")) is None

    def test_lookup_runs_off_the_event_loop_thread(self, vault, monkeypatch):
        resolver = LocalResourceResolver(vault / "notes", vault)
        lookup_threads = []
        original_find = LocalResourceResolver.find

        def recording_find(self, link):
            lookup_threads.append(threading.get_ident())
            return original_find(self, link)

        monkeypatch.setattr(LocalResourceResolver, "find", recording_find)
        assert asyncio.run(resolver("far%20away.png")) == b"far"
        assert lookup_threads and lookup_threads[0] != threading.get_ident()
