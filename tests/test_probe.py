"""
Tests for the ProbeExecutor.

Network failures must come back as unreachable measurements; only
malformed input raises.
"""

import asyncio

import dns.asyncresolver
import dns.resolver
import httpx
import pytest
import pytest_asyncio

from config.constants import ProbeMethod
from exceptions.base import ConfigurationError
from exceptions.validation import InvalidTargetError
from monitoring.models import Target
from monitoring.probe import ProbeExecutor


@pytest_asyncio.fixture
async def tcp_server():
    """Local TCP server accepting and immediately closing connections."""

    async def handle(reader, writer):
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    yield port
    server.close()
    await server.wait_closed()


async def _unused_port() -> int:
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    return port


# ============================================================
# INPUT VALIDATION
# ============================================================

class TestProbeInput:

    @pytest.mark.asyncio
    async def test_empty_host_raises(self):
        with pytest.raises(InvalidTargetError) as exc_info:
            await ProbeExecutor().probe(Target(host="  ", name="blank"), timeout=1.0)
        assert isinstance(exc_info.value, ConfigurationError)
        assert exc_info.value.details["reason"] == "empty_host"

    @pytest.mark.asyncio
    async def test_non_positive_timeout_raises(self):
        with pytest.raises(InvalidTargetError):
            await ProbeExecutor().probe(Target(host="127.0.0.1", name="local"), timeout=0)


# ============================================================
# TCP
# ============================================================

class TestTcpProbe:

    @pytest.mark.asyncio
    async def test_open_port_is_reachable(self, tcp_server):
        target = Target(host="127.0.0.1", name="local", port=tcp_server)

        measurement = await ProbeExecutor().probe(target, timeout=2.0, sequence=7)

        assert measurement.reachable
        assert measurement.latency_ms >= 0
        assert measurement.sequence == 7
        assert measurement.target is target

    @pytest.mark.asyncio
    async def test_refused_port_is_unreachable(self):
        port = await _unused_port()
        target = Target(host="127.0.0.1", name="closed", port=port)

        measurement = await ProbeExecutor().probe(target, timeout=2.0)

        assert not measurement.reachable
        assert measurement.error

    @pytest.mark.asyncio
    async def test_slow_check_times_out(self):
        executor = ProbeExecutor()

        async def hang(target, timeout):
            await asyncio.sleep(10)

        executor._probers[ProbeMethod.TCP] = hang

        measurement = await executor.probe(Target(host="127.0.0.1", name="slow"), timeout=0.05)

        assert not measurement.reachable
        assert "timed out" in measurement.error


# ============================================================
# HTTP
# ============================================================

class TestHttpProbe:

    @staticmethod
    def _executor(handler) -> ProbeExecutor:
        return ProbeExecutor(
            default_method=ProbeMethod.HTTP,
            http_transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_client_error_still_reachable(self):
        executor = self._executor(lambda request: httpx.Response(404))

        measurement = await executor.probe(Target("example.com", "web"), timeout=1.0)

        assert measurement.reachable

    @pytest.mark.asyncio
    async def test_server_error_is_unreachable(self):
        executor = self._executor(lambda request: httpx.Response(503))

        measurement = await executor.probe(Target("example.com", "web"), timeout=1.0)

        assert not measurement.reachable
        assert "503" in measurement.error

    @pytest.mark.asyncio
    async def test_transport_error_is_unreachable(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        measurement = await self._executor(refuse).probe(
            Target("example.com", "web"), timeout=1.0
        )

        assert not measurement.reachable
        assert "ConnectError" in measurement.error

    @pytest.mark.asyncio
    async def test_url_uses_port_and_scheme(self):
        seen = []

        def handler(request):
            seen.append((request.url.scheme, request.url.host, request.method))
            return httpx.Response(200)

        await self._executor(handler).probe(
            Target("example.com", "secure", port=443), timeout=1.0
        )

        assert seen == [("https", "example.com", "HEAD")]


# ============================================================
# DNS / ICMP
# ============================================================

class FakeResolver:
    answer = ["93.184.216.34"]
    error = None

    def __init__(self, *args, **kwargs):
        self.lifetime = None

    async def resolve(self, qname, rdtype):
        if self.error is not None:
            raise self.error
        return self.answer


class TestDnsAndIcmpProbe:

    @pytest.mark.asyncio
    async def test_resolvable_host(self, monkeypatch):
        monkeypatch.setattr(dns.asyncresolver, "Resolver", FakeResolver)
        executor = ProbeExecutor(default_method=ProbeMethod.DNS)

        measurement = await executor.probe(Target("example.com", "dns"), timeout=1.0)

        assert measurement.reachable

    @pytest.mark.asyncio
    async def test_nxdomain_is_unreachable(self, monkeypatch):
        class Failing(FakeResolver):
            error = dns.resolver.NXDOMAIN()

        monkeypatch.setattr(dns.asyncresolver, "Resolver", Failing)
        executor = ProbeExecutor(default_method=ProbeMethod.DNS)

        measurement = await executor.probe(Target("missing.example", "dns"), timeout=1.0)

        assert not measurement.reachable
        assert "NXDOMAIN" in measurement.error

    @pytest.mark.asyncio
    async def test_missing_ping_binary_is_unreachable(self):
        executor = ProbeExecutor(
            default_method=ProbeMethod.ICMP,
            ping_command="definitely-not-a-ping-binary",
        )

        measurement = await executor.probe(Target("127.0.0.1", "icmp"), timeout=1.0)

        assert not measurement.reachable

    @pytest.mark.asyncio
    async def test_timed_out_ping_is_killed_and_reaped(self, monkeypatch):
        class HangingProcess:
            def __init__(self):
                self.returncode = None
                self.killed = False
                self.reaped = False
                self._exited = asyncio.Event()

            async def communicate(self):
                await asyncio.Event().wait()

            def kill(self):
                self.killed = True
                self.returncode = -9
                self._exited.set()

            async def wait(self):
                await self._exited.wait()
                self.reaped = True
                return self.returncode

        process = HangingProcess()

        async def fake_exec(*args, **kwargs):
            return process

        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
        executor = ProbeExecutor(default_method=ProbeMethod.ICMP)

        measurement = await executor.probe(Target("10.0.0.1", "icmp"), timeout=0.05)

        assert not measurement.reachable
        assert "timed out" in measurement.error
        assert process.killed
        assert process.reaped
