"""TLD registry: WHOIS server and availability pattern per TLD."""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from .exceptions import TldConfigError
from .models import TldConfig

logger = logging.getLogger(__name__)

DEFAULT_TLDS = [
    TldConfig(name="com", server="whois.verisign-grs.com", available_pattern="No match for"),
    TldConfig(name="net", server="whois.verisign-grs.com", available_pattern="No match for"),
    TldConfig(name="org", server="whois.pir.org", available_pattern="NOT FOUND"),
]

# Added by generate_tld_config when TLD_DATA does not list them
COMMON_EXTRA_TLDS = [
    TldConfig(name="app", server="whois.nic.app", available_pattern="Domain not found"),
    TldConfig(name="dev", server="whois.nic.dev", available_pattern="Domain not found"),
    TldConfig(name="io", server="whois.nic.io", available_pattern="is available for purchase"),
]


class TldRegistry:
    """Read-only mapping of TLD name to its WHOIS configuration.

    The snapshot is built once and never mutated, so it can be shared by
    concurrent checks without locking. Reloading means building a new
    registry.
    """

    def __init__(self, configs: Iterable[TldConfig]):
        self._configs: Dict[str, TldConfig] = {}
        for config in configs:
            self._configs[config.name] = config

    @classmethod
    def default(cls) -> 'TldRegistry':
        return cls(DEFAULT_TLDS)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> 'TldRegistry':
        """Load ``{"tlds": [...]}`` from a JSON file."""
        with open(path, encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise TldConfigError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get('tlds'), list):
            raise TldConfigError('Invalid TLD configuration format')

        try:
            configs = [TldConfig.from_dict(entry) for entry in data['tlds']]
        except (KeyError, TypeError) as e:
            raise TldConfigError(f"Invalid TLD entry in {path}: {e}") from e

        return cls(configs)

    def get_enabled_tlds(self) -> List[TldConfig]:
        return [config for config in self._configs.values() if config.enabled]

    def lookup(self, name: str) -> Optional[TldConfig]:
        return self._configs.get(name)

    def __len__(self) -> int:
        return len(self._configs)

    def __iter__(self) -> Iterator[TldConfig]:
        return iter(self._configs.values())

    def __contains__(self, name: object) -> bool:
        return name in self._configs


def load_registry(path: Optional[Union[str, Path]] = None) -> TldRegistry:
    """Load the registry from ``path``, falling back to the built-in defaults."""
    if path is None:
        logger.info("No TLD config given, using default TLD configuration")
        return TldRegistry.default()

    try:
        registry = TldRegistry.from_json(path)
    except (OSError, TldConfigError) as e:
        logger.error("Error reading TLD config %s: %s", path, e)
        logger.warning("Using default TLD configuration")
        return TldRegistry.default()

    logger.info("Loaded %d TLD configurations from %s", len(registry), path)
    return registry


def parse_tld_data(text: str) -> List[TldConfig]:
    """Parse ``tld=server=pattern`` lines from a TLD_DATA file."""
    configs = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith('=') or stripped.startswith('//'):
            continue

        parts = line.split('=')
        if len(parts) < 3:
            continue

        name, server, pattern = (p.strip() for p in parts[:3])
        if name and server and pattern:
            configs.append(TldConfig(name=name, server=server, available_pattern=pattern))

    return configs


def generate_tld_config(
    tld_data_path: Union[str, Path],
    output_path: Union[str, Path]
) -> List[TldConfig]:
    """Convert a TLD_DATA file into a tld-config.json file."""
    text = Path(tld_data_path).read_text(encoding='utf-8')
    configs = parse_tld_data(text)
    if not configs:
        raise TldConfigError(f"No valid TLDs found in {tld_data_path}")

    known = {config.name for config in configs}
    configs.extend(extra for extra in COMMON_EXTRA_TLDS if extra.name not in known)

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'w', encoding='utf-8') as f:
        json.dump({'tlds': [config.to_dict() for config in configs]}, f, indent=2)

    logger.info("Generated TLD config with %d TLDs at %s", len(configs), output)
    return configs
