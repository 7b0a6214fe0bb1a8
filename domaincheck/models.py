"""Data records shared by the registry, checkers and CLI."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TldConfig:
    """WHOIS settings for one top-level domain."""
    name: str
    server: str
    available_pattern: str
    enabled: bool = True
    display_name: str = ""

    def __post_init__(self):
        if not self.display_name:
            object.__setattr__(self, 'display_name', f".{self.name}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TldConfig':
        """Build from the JSON layout used in tld-config.json."""
        return cls(
            name=data['name'],
            server=data['server'],
            available_pattern=data['availablePattern'],
            enabled=data.get('enabled', True),
            display_name=data.get('displayName', '')
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'server': self.server,
            'availablePattern': self.available_pattern,
            'enabled': self.enabled,
            'displayName': self.display_name
        }


@dataclass(frozen=True)
class CheckTask:
    """One domain to look up against one WHOIS server."""
    domain: str
    tld: str
    server: str
    pattern: str

    @classmethod
    def for_keyword(cls, keyword: str, tld: TldConfig) -> 'CheckTask':
        return cls(
            domain=f"{keyword}.{tld.name}",
            tld=tld.name,
            server=tld.server,
            pattern=tld.available_pattern
        )


@dataclass
class DomainCheckResult:
    """Result of domain availability check."""
    domain: str
    tld: str
    available: bool = False
    timestamp: int = field(default_factory=now_millis)
    error: Optional[str] = None

    def __post_init__(self):
        # A failed lookup never reports a domain as available
        if self.error is not None:
            self.available = False

    @classmethod
    def failure(cls, task: CheckTask, error: str) -> 'DomainCheckResult':
        return cls(domain=task.domain, tld=task.tld, available=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'domain': self.domain,
            'available': self.available,
            'tld': self.tld,
            'timestamp': self.timestamp
        }
        if self.error:
            result['error'] = self.error
        return result
