"""Process-wide ``net.slp.*`` configuration.

Properties are read once from defaults, an optional configuration file and
caller supplied overrides. They cannot be changed afterwards:
:meth:`PropertyStore.set` is accepted for API compatibility and does
nothing.

Configuration files are either YAML mappings (``.yaml``/``.yml``) or the
classic ``slp.conf`` format::

    # comment
    net.slp.useScopes = DEFAULT,lab
"""

import logging
import os
import threading
from pathlib import Path
from typing import Mapping, Optional, Union

import yaml

logger = logging.getLogger(__name__)

CONF_ENV_VAR = "SLP_CONF"
DEFAULT_CONF_PATH = Path("/etc/slp.conf")

DEFAULT_PROPERTIES: dict[str, str] = {
    "net.slp.useScopes": "",
    "net.slp.DAAddresses": "",
    "net.slp.isBroadcastOnly": "false",
    "net.slp.multicastTTL": "255",
    "net.slp.multicastMaximumWait": "15000",
    "net.slp.multicastTimeouts": "500,750,1000,1500,2000,3000",
    "net.slp.unicastMaximumWait": "15000",
    "net.slp.unicastTimeouts": "500,750,1000,1500,2000,3000",
    "net.slp.MTU": "1400",
    "net.slp.locale": "en",
    "net.slp.maxResults": "256",
    "net.slp.interfaces": "",
    "net.slp.port": "427",
}

_TRUE_VALUES = {"true", "yes", "on", "1"}


def _stringify(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(v) for v in value)
    return str(value)


def parse_conf_text(text: str, source: str = "<inline>") -> dict[str, str]:
    """Parse ``slp.conf`` style ``name = value`` lines.

    Raises:
        ValueError: If a non-comment line has no '='.
    """
    properties = {}
    for number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if "=" not in line:
            raise ValueError(f"Expected 'name = value' at {source}:{number}")
        name, value = line.split("=", 1)
        properties[name.strip()] = value.strip()
    return properties


def load_conf_file(path: Union[str, Path]) -> dict[str, str]:
    """Load properties from a configuration file.

    Args:
        path: Path to a YAML or slp.conf file.

    Returns:
        Property name -> string value.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file is malformed.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"SLP configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        text = f.read()

    if path.suffix not in (".yaml", ".yml"):
        return parse_conf_text(text, source=str(path))

    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration must be a YAML mapping, got {type(data).__name__}")
    return {str(k): _stringify(v) for k, v in data.items()}


def _default_conf_path() -> Optional[Path]:
    env_path = os.environ.get(CONF_ENV_VAR)
    if env_path:
        return Path(env_path)
    if DEFAULT_CONF_PATH.exists():
        return DEFAULT_CONF_PATH
    return None


class PropertyStore:
    """Read-only view of the SLP configuration properties."""

    def __init__(
        self,
        overrides: Optional[Mapping[str, object]] = None,
        path: Optional[Union[str, Path]] = None,
        read_files: bool = True,
    ):
        """Initialize the store.

        Args:
            overrides: Properties taking precedence over every other source.
            path: Configuration file. Defaults to $SLP_CONF, then
                /etc/slp.conf when present.
            read_files: If False, skip configuration file discovery.
        """
        self._values = dict(DEFAULT_PROPERTIES)
        if path is None and read_files:
            path = _default_conf_path()
        if path is not None:
            self._values.update(load_conf_file(path))
            logger.debug("Loaded SLP properties from %s", path)
        if overrides:
            self._values.update({k: _stringify(v) for k, v in overrides.items()})

    def get(self, name: str) -> Optional[str]:
        """Return a property value, or None if it is not defined."""
        return self._values.get(name)

    def set(self, name: str, value: Optional[str]) -> None:
        """Accepted and ignored: properties are fixed at process start."""
        logger.debug("Ignoring runtime change of SLP property %s", name)

    def get_int(self, name: str, default: int = 0) -> int:
        value = self.get(name)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Property %s=%r is not an integer, using %d", name, value, default)
            return default

    def get_bool(self, name: str, default: bool = False) -> bool:
        value = self.get(name)
        if value is None or not value.strip():
            return default
        return value.strip().lower() in _TRUE_VALUES

    def get_list(self, name: str) -> list[str]:
        value = self.get(name) or ""
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_int_list(self, name: str) -> list[int]:
        values = []
        for item in self.get_list(name):
            try:
                values.append(int(item))
            except ValueError:
                logger.warning("Ignoring non-integer entry %r in %s", item, name)
        return values


_store: Optional[PropertyStore] = None
_store_lock = threading.Lock()


def get_store() -> PropertyStore:
    """Process-wide store, loaded on first use."""
    global _store
    with _store_lock:
        if _store is None:
            _store = PropertyStore()
        return _store


def get_property(name: str) -> Optional[str]:
    return get_store().get(name)


def set_property(name: str, value: Optional[str]) -> None:
    """No-op: see :meth:`PropertyStore.set`."""
    get_store().set(name, value)
