"""DNS resolution of WHOIS server hostnames."""

import asyncio
import ipaddress
import logging

import dns.asyncresolver
import dns.exception
import dns.resolver

from ..exceptions import ResolutionError

logger = logging.getLogger(__name__)


class Resolver:
    """Resolves WHOIS server names to an IPv4 or IPv6 address.

    Lookups go to the configured nameservers through dnspython: ``A`` first,
    then ``AAAA`` when the name has no IPv4 address. The hosts file is not
    consulted, so WHOIS servers must be real DNS names or IP literals.

    Every call performs a fresh lookup: WHOIS hosts are often served by
    round-robin DNS, so addresses are never pinned.
    """

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    async def resolve(self, hostname: str) -> str:
        """Return an address for ``hostname``.

        Raises:
            ResolutionError: lookup failed or did not finish within the timeout.
        """
        try:
            ipaddress.ip_address(hostname)
            return hostname
        except ValueError:
            pass

        try:
            address = await asyncio.wait_for(self._lookup(hostname), timeout=self.timeout)
        except (asyncio.TimeoutError, dns.exception.Timeout):
            raise ResolutionError(f"DNS lookup timeout for {hostname}")
        except dns.resolver.NXDOMAIN:
            raise ResolutionError(f"Host not found: {hostname}")
        except dns.exception.DNSException as e:
            raise ResolutionError(f"DNS lookup failed for {hostname}: {e}") from e

        logger.debug("Resolved %s to %s", hostname, address)
        return address

    async def _lookup(self, hostname: str) -> str:
        resolver = dns.asyncresolver.Resolver()
        resolver.timeout = self.timeout
        resolver.lifetime = self.timeout

        for rdtype in ('A', 'AAAA'):
            try:
                answer = await resolver.resolve(hostname, rdtype)
            except dns.resolver.NoAnswer:
                continue
            return answer[0].address

        raise ResolutionError(f"No address records for {hostname}")
