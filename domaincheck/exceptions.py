"""Error types raised by the domain checker."""


class DomainCheckError(Exception):
    """Base class for all domaincheck errors."""


class WhoisError(DomainCheckError):
    """A single WHOIS exchange failed."""


class ResolutionError(WhoisError):
    """WHOIS server hostname could not be resolved in time."""


class ServerConnectionError(WhoisError):
    """TCP connection to the WHOIS server failed or timed out."""


class InvalidServerError(ServerConnectionError):
    """WHOIS server address is empty."""


class TransportError(WhoisError):
    """Socket error or missing data after the connection was established."""


class NoValidTldsError(DomainCheckError):
    """None of the requested TLDs are known and enabled."""


class TldConfigError(DomainCheckError, ValueError):
    """TLD configuration could not be parsed."""
