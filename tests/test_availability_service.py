import asyncio
import time

import dns.asyncresolver
import pytest

from domaincheck.checkers import AvailabilityService, Resolver, WhoisChecker, WhoisClient
from domaincheck.config import Settings
from domaincheck.exceptions import NoValidTldsError, ServerConnectionError
from domaincheck.models import DomainCheckResult, TldConfig
from domaincheck.registry import TldRegistry


class FakeChecker:
    """Records dispatch order and in-flight concurrency."""

    def __init__(self, delays=None, failures=()):
        self.delays = delays or {}
        self.failures = set(failures)
        self.started = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.retried = []

    async def check(self, task):
        self.started.append(task.domain)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(task.domain, 0))
            if task.domain in self.failures:
                raise RuntimeError(f"checker crashed on {task.domain}")
            return DomainCheckResult(domain=task.domain, tld=task.tld, available=task.tld == "com")
        finally:
            self.in_flight -= 1

    async def check_with_retry(self, task, max_attempts=3, delay=1.0):
        self.retried.append((task, max_attempts, delay))
        return await self.check(task)


class RecordingService(AvailabilityService):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.windows = []

    async def _run_window(self, window, *args):
        self.windows.append([task.domain for task in window])
        return await super()._run_window(window, *args)


def make_service(registry, checker=None, **kwargs):
    kwargs.setdefault('window_delay', 0)
    return RecordingService(registry, checker=checker or FakeChecker(), **kwargs)


@pytest.mark.parametrize("keywords,tlds,expected", [
    (["alpha"], ["com"], 1),
    (["alpha", "beta"], ["com", "net", "org"], 6),
    (["a", "b", "c", "d"], ["com", "nope", "org"], 8),
    (["a", "b"], ["com", "old"], 2),
])
def test_one_result_per_task(registry, keywords, tlds, expected):
    results = asyncio.run(make_service(registry).check_domains(keywords, tlds))
    assert len(results) == expected


@pytest.mark.parametrize("tlds", [["nope"], ["old"], []])
def test_no_valid_tlds(registry, tlds):
    service = make_service(registry)
    with pytest.raises(NoValidTldsError):
        asyncio.run(service.check_domains(["alpha"], tlds))
    assert service.checker.started == []


def test_keyword_outer_tld_inner_order(registry):
    results = asyncio.run(make_service(registry).check_domains(["alpha", "beta"], ["org", "com"]))
    assert [r.domain for r in results] == ["alpha.org", "alpha.com", "beta.org", "beta.com"]
    assert [r.tld for r in results] == ["org", "com", "org", "com"]
    assert [r.available for r in results] == [False, True, False, True]


def test_seven_tasks_run_in_three_windows(registry):
    keywords = [f"k{i}" for i in range(7)]
    checker = FakeChecker(delays={"k1.com": 0.2, "k0.com": 0.01, "k2.com": 0.01})
    service = make_service(registry, checker)

    results = asyncio.run(service.check_domains(keywords, ["com"]))

    assert [len(w) for w in service.windows] == [3, 3, 1]
    assert [r.domain for r in results] == [f"{k}.com" for k in keywords]
    assert checker.max_in_flight == 3


def test_next_window_waits_for_slowest_task(registry):
    checker = FakeChecker(delays={"k1.com": 0.2})
    service = make_service(registry, checker)
    asyncio.run(service.check_domains([f"k{i}" for i in range(4)], ["com"]))

    # k3 is dispatched only after the whole first window settled
    assert checker.started.index("k3.com") == 3
    assert checker.max_in_flight == 3


def test_failures_are_isolated(registry):
    checker = FakeChecker(failures={"k1.com", "k4.com"})
    results = asyncio.run(make_service(registry, checker).check_domains([f"k{i}" for i in range(6)], ["com"]))

    assert len(results) == 6
    failed = {r.domain: r for r in results if r.error}
    assert set(failed) == {"k1.com", "k4.com"}
    assert failed["k1.com"].error == "Error: checker crashed on k1.com"
    assert failed["k1.com"].available is False
    assert all(r.available for r in results if not r.error)


def test_refused_server_does_not_abort_batch():
    class PartlyDownClient:
        async def query(self, server, domain):
            if server == "whois.down.test":
                raise ServerConnectionError("Failed to connect to WHOIS server whois.down.test: refused")
            return f"No match for {domain}"

    registry = TldRegistry([
        TldConfig(name="com", server="whois.verisign-grs.com", available_pattern="No match for"),
        TldConfig(name="down", server="whois.down.test", available_pattern="No match for"),
    ])
    service = AvailabilityService(registry, checker=WhoisChecker(PartlyDownClient()), window_delay=0)
    results = asyncio.run(service.check_domains(["a", "b", "c"], ["com", "down"]))

    assert [r.domain for r in results] == ["a.com", "a.down", "b.com", "b.down", "c.com", "c.down"]
    for r in results:
        if r.tld == "down":
            assert r.available is False and "refused" in r.error
        else:
            assert r.available is True and r.error is None


def test_slow_dns_does_not_delay_siblings(monkeypatch, whois_server):
    class HangingResolver:
        def __init__(self):
            self.timeout = self.lifetime = None

        async def resolve(self, hostname, rdtype):
            await asyncio.sleep(60)

    monkeypatch.setattr(dns.asyncresolver, "Resolver", HangingResolver)

    registry = TldRegistry([
        TldConfig(name="com", server="127.0.0.1", available_pattern="No match for"),
        TldConfig(name="slow", server="whois.slow.test", available_pattern="No match for"),
        TldConfig(name="net", server="127.0.0.1", available_pattern="No match for"),
    ])

    async def run():
        async with whois_server.serve(whois_server.replying("No match for domain\r\n")) as port:
            client = WhoisClient(resolver=Resolver(timeout=0.5), port=port)
            service = AvailabilityService(registry, checker=WhoisChecker(client), window_delay=0)
            return await service.check_domains(["acme"], ["com", "slow", "net"])

    com, slow, net = asyncio.run(run())
    assert com.available and net.available
    assert slow.error and "timeout" in slow.error
    assert com.timestamp < slow.timestamp
    assert net.timestamp < slow.timestamp
    assert slow.timestamp - com.timestamp >= 400


def test_pacing_between_windows_only(registry):
    service = make_service(registry, window_delay=0.2)

    start = time.monotonic()
    asyncio.run(service.check_domains(["a", "b", "c", "d", "e", "f", "g"], ["com"]))
    assert time.monotonic() - start >= 0.4

    start = time.monotonic()
    asyncio.run(service.check_domains(["a", "b", "c"], ["com"]))
    assert time.monotonic() - start < 0.2


def test_progress_reported_per_window(registry):
    progress = []
    asyncio.run(make_service(registry).check_domains(
        [f"k{i}" for i in range(7)], ["com"], progress_callback=lambda c, t: progress.append((c, t))
    ))
    assert progress == [(3, 7), (6, 7), (7, 7)]


def test_deadline_keeps_results_settled_inside_unfinished_window(registry):
    checker = FakeChecker(delays={"k0.com": 0.05, "k1.com": 0.05, "k2.com": 1.0})
    service = make_service(registry, checker)

    start = time.monotonic()
    results = asyncio.run(service.check_domains(["k0", "k1", "k2"], ["com"], deadline=0.5))

    assert [r.domain for r in results] == ["k0.com", "k1.com"]
    assert all(r.error is None for r in results)
    assert time.monotonic() - start < 0.9


def test_deadline_results_keep_submission_order(registry):
    keywords = [f"k{i}" for i in range(7)]
    checker = FakeChecker(delays={"k0.com": 0.05, "k1.com": 0.05, "k2.com": 0.05, "k3.com": 2.0})
    service = make_service(registry, checker)

    results = asyncio.run(service.check_domains(keywords, ["com"], deadline=0.6))

    # k3 is still running; k4 and k5 settled beside it, k6 never started
    assert [r.domain for r in results] == ["k0.com", "k1.com", "k2.com", "k4.com", "k5.com"]
    assert "k6.com" not in checker.started


def test_window_size_must_be_positive(registry):
    with pytest.raises(ValueError):
        AvailabilityService(registry, window_size=0)


def test_check_single_uses_retry(registry):
    checker = FakeChecker()
    service = make_service(registry, checker, retry_attempts=5, retry_delay=0.25)
    result = asyncio.run(service.check_single("my-shop.com"))

    assert result.domain == "my-shop.com"
    assert result.available is True
    task, attempts, delay = checker.retried[0]
    assert (task.tld, task.server, attempts, delay) == ("com", "whois.verisign-grs.com", 5, 0.25)


@pytest.mark.parametrize("domain", ["example.old", "example.zz", "com", ".com"])
def test_check_single_rejects_unsupported(registry, domain):
    with pytest.raises(NoValidTldsError):
        asyncio.run(make_service(registry).check_single(domain))


def test_from_settings_wires_stack(registry):
    settings = Settings(window_size=5, window_delay=0.1, dns_timeout=2.0, connect_timeout=3.0,
                        first_byte_timeout=4.0, idle_timeout=0.5, port=4343, retry_attempts=2)
    service = AvailabilityService.from_settings(settings, registry)

    assert service.window_size == 5
    assert service.window_delay == 0.1
    assert service.retry_attempts == 2
    client = service.checker.client
    assert (client.port, client.connect_timeout, client.first_byte_timeout, client.idle_timeout) == (4343, 3.0, 4.0, 0.5)
    assert client.resolver.timeout == 2.0
    assert [t.name for t in service.get_enabled_tlds()] == ["com", "net", "org"]
