"""
============================================================================
REACHABILITY MONITOR - PROBE EXECUTOR
============================================================================
One reachability/latency measurement against one target.

    ProbeExecutor.probe(target, timeout) ──► Measurement
    ├── _probe_tcp()    ← TCP connect to host:port (default)
    ├── _probe_icmp()   ← platform ``ping`` command, one echo request
    ├── _probe_dns()    ← dnspython async A-record resolution
    └── _probe_http()   ← httpx HEAD request

Contract
--------
• An unreachable / refused / timed-out / unresolvable target is a
  normal ``Measurement.unreachable`` result, never an exception.
• Only malformed input (empty host, non-positive timeout) raises
  InvalidTargetError.
• Every probe is bounded by ``timeout`` via asyncio.wait_for.
• No logging and no state: the executor can be shared by every task
  of a sweep.
============================================================================
"""

import asyncio
import math
import re
import time
from typing import Optional, Callable, Awaitable, Dict

import httpx
import dns.asyncresolver
import dns.exception

from config.constants import Defaults, ProbeMethod
from exceptions.validation import InvalidTargetError
from monitoring.models import Measurement, Target


_PING_TIME_RE = re.compile(r"time[=<]\s*([\d.]+)\s*ms")


class _ProbeFailed(Exception):
    """Raised by a prober when the target answered but is not reachable."""


class ProbeExecutor:
    """
    Performs reachability checks. Stateless and reusable.

    Parameters
    ----------
    default_method : ProbeMethod
        Used for targets that don't override ``method``.
    default_port : int
        Port for TCP/HTTP probes when the target has none.
    http_transport : httpx.AsyncBaseTransport | None
        Injected transport for the HTTP prober (tests use
        httpx.MockTransport).
    ping_command : str
        Executable used by the ICMP prober.
    """

    def __init__(
        self,
        default_method: ProbeMethod = Defaults.PROBE_METHOD,
        default_port: int = Defaults.TCP_PORT,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        ping_command: str = "ping",
    ):
        self.default_method = ProbeMethod(default_method)
        self.default_port = default_port
        self._http_transport = http_transport
        self._ping_command = ping_command

        self._probers: Dict[ProbeMethod, Callable[[Target, float], Awaitable[Optional[float]]]] = {
            ProbeMethod.TCP: self._probe_tcp,
            ProbeMethod.ICMP: self._probe_icmp,
            ProbeMethod.DNS: self._probe_dns,
            ProbeMethod.HTTP: self._probe_http,
        }

    # ------------------------------------------------------------------
    # PUBLIC API
    # ------------------------------------------------------------------

    async def probe(self, target: Target, timeout: float, sequence: int = 0) -> Measurement:
        """
        Measure *target* once.

        Parameters
        ----------
        target : Target
        timeout : float
            Upper bound in seconds for the whole check.
        sequence : int
            Sweep number copied into the Measurement.

        Returns
        -------
        Measurement
            Reachable with ``latency_ms`` or unreachable with ``error``.

        Raises
        ------
        InvalidTargetError
            Empty host or non-positive timeout.
        """
        if not target.host or not target.host.strip():
            raise InvalidTargetError(
                "Cannot probe a target with an empty host",
                host=target.host,
                reason="empty_host",
            )
        if timeout is None or timeout <= 0:
            raise InvalidTargetError(
                f"Probe timeout must be positive, got {timeout!r}",
                host=target.host,
                reason="invalid_timeout",
                field="timeout",
            )

        method = ProbeMethod(target.method or self.default_method)
        prober = self._probers[method]

        start_time = time.perf_counter()
        try:
            measured = await asyncio.wait_for(prober(target, timeout), timeout=timeout)
        except asyncio.TimeoutError:
            return Measurement.unreachable(
                target, f"{method.value} probe timed out after {timeout}s", sequence=sequence
            )
        except _ProbeFailed as e:
            return Measurement.unreachable(target, str(e), sequence=sequence)
        except (OSError, httpx.HTTPError, dns.exception.DNSException) as e:
            return Measurement.unreachable(
                target, f"{type(e).__name__}: {str(e)[:200]}", sequence=sequence
            )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        latency_ms = measured if measured is not None else elapsed_ms
        return Measurement.success(target, latency_ms, sequence=sequence)

    # ------------------------------------------------------------------
    # TCP
    # ------------------------------------------------------------------

    async def _probe_tcp(self, target: Target, timeout: float) -> Optional[float]:
        """Open a TCP connection, return the connect latency, close."""
        port = target.port or self.default_port
        start_time = time.perf_counter()

        reader, writer = await asyncio.open_connection(target.host.strip(), port)
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass  # peer reset during close; the connect already succeeded

        return elapsed_ms

    # ------------------------------------------------------------------
    # ICMP
    # ------------------------------------------------------------------

    async def _probe_icmp(self, target: Target, timeout: float) -> Optional[float]:
        """
        Send one echo request with the platform ping command.

        Uses the RTT reported by ping when it can be parsed, otherwise the
        wall-clock time of the command.
        """
        wait_seconds = str(max(1, int(math.ceil(timeout))))
        proc = await asyncio.create_subprocess_exec(
            self._ping_command, "-c", "1", "-W", wait_seconds, target.host.strip(),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, _ = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await asyncio.shield(proc.wait())
            raise

        if proc.returncode != 0:
            raise _ProbeFailed(f"no echo reply (ping exit code {proc.returncode})")

        match = _PING_TIME_RE.search(stdout.decode(errors="replace"))
        return float(match.group(1)) if match else None

    # ------------------------------------------------------------------
    # DNS
    # ------------------------------------------------------------------

    async def _probe_dns(self, target: Target, timeout: float) -> Optional[float]:
        """Resolve the host's A record; latency is the resolution time."""
        resolver = dns.asyncresolver.Resolver()
        resolver.lifetime = timeout

        answers = await resolver.resolve(target.host.strip(), "A")
        if not answers:
            raise _ProbeFailed(f"no A record for {target.host}")
        return None

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _probe_http(self, target: Target, timeout: float) -> Optional[float]:
        """
        HEAD the target's root. Any response below 500 proves the host is
        reachable; 5xx is treated as unreachable.
        """
        host = target.host.strip()
        if ":" in host:
            host = f"[{host}]"  # IPv6 literal
        port = target.port or self.default_port
        scheme = "https" if port == 443 else "http"
        url = f"{scheme}://{host}:{port}/"

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,
            transport=self._http_transport,
            headers={"User-Agent": Defaults.USER_AGENT},
        ) as client:
            response = await client.head(url)

        if response.status_code >= 500:
            raise _ProbeFailed(f"HTTP {response.status_code} from {url}")
        return None
