"""Registration lifetime tracking.

Keeps the registrations made through this process and what is known about
directory agents. Nothing here re-registers on its own: callers refresh
their registrations before they lapse, using :meth:`due_for_refresh` and
:func:`get_refresh_interval` as guidance.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from .errors import SLPException
from .wire.attributes import parse_attr_list

logger = logging.getLogger(__name__)

SLP_LIFETIME_DEFAULT = 10800
# A registration with this lifetime never expires
SLP_LIFETIME_MAXIMUM = 65535

MIN_REFRESH_ATTRIBUTE = "min-refresh-interval"


@dataclass
class Registration:
    """A service advertisement made by this process."""
    url: str
    lifetime: int
    srvtype: str = ""
    attrs: str = ""
    scopes: str = ""
    fresh: bool = True
    registered_at: float = field(default_factory=time.time)

    @property
    def is_permanent(self) -> bool:
        return self.lifetime >= SLP_LIFETIME_MAXIMUM

    @property
    def expires_at(self) -> Optional[float]:
        """Wall clock expiry, None for permanent registrations."""
        if self.is_permanent:
            return None
        return self.registered_at + self.lifetime

    def remaining(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds until expiry (negative once lapsed), None if permanent."""
        expires_at = self.expires_at
        if expires_at is None:
            return None
        return expires_at - (time.time() if now is None else now)


@dataclass
class DirectoryAgentInfo:
    """What a DAAdvert told us about a directory agent."""
    url: str
    scopes: list[str] = field(default_factory=list)
    min_refresh_interval: int = 0
    boot_timestamp: int = 0
    seen_at: float = field(default_factory=time.time)


class LifetimeManager:
    """Tracks registrations and the refresh contract of known DAs."""

    def __init__(self):
        self._lock = threading.Lock()
        self._registrations: dict[str, Registration] = {}
        self._agents: dict[str, DirectoryAgentInfo] = {}

    def record(self, registration: Registration) -> None:
        """Remember a successful registration, replacing any earlier one."""
        minimum = self.minimum_refresh_interval()
        if minimum and not registration.is_permanent and registration.lifetime < minimum:
            logger.warning(
                "Lifetime %ds for %s is below the minimum refresh interval of %ds; "
                "directory agents may reject its refreshes",
                registration.lifetime, registration.url, minimum,
            )
        with self._lock:
            previous = self._registrations.get(registration.url)
            if previous is not None and not registration.fresh:
                # Incremental registrations add attributes to the existing entry
                registration.attrs = ",".join(a for a in (previous.attrs, registration.attrs) if a)
            self._registrations[registration.url] = registration

    def forget(self, url: str) -> Optional[Registration]:
        with self._lock:
            return self._registrations.pop(url, None)

    def get(self, url: str) -> Optional[Registration]:
        with self._lock:
            return self._registrations.get(url)

    def registrations(self) -> list[Registration]:
        with self._lock:
            return list(self._registrations.values())

    def expired(self, now: Optional[float] = None) -> list[Registration]:
        """Registrations whose lifetime has elapsed."""
        now = time.time() if now is None else now
        return [
            r for r in self.registrations()
            if r.expires_at is not None and r.expires_at <= now
        ]

    def due_for_refresh(self, now: Optional[float] = None, margin: float = 0.0) -> list[Registration]:
        """Registrations that lapse within ``margin`` seconds of ``now``."""
        now = time.time() if now is None else now
        return [
            r for r in self.registrations()
            if r.expires_at is not None and r.expires_at - margin <= now
        ]

    def observe_directory_agent(
        self,
        url: str,
        scopes: str = "",
        attrs: str = "",
        boot_timestamp: int = 0,
    ) -> DirectoryAgentInfo:
        """Record a directory agent from its advertisement.

        A zero boot timestamp means the DA is going down; it is dropped.
        """
        minimum = 0
        if attrs:
            try:
                values = parse_attr_list(attrs).get(MIN_REFRESH_ATTRIBUTE) or []
                minimum = int(values[0]) if values else 0
            except (SLPException, ValueError) as e:
                logger.debug("Ignoring unparsable DA attributes from %s: %s", url, e)

        info = DirectoryAgentInfo(
            url=url,
            scopes=[s.strip() for s in scopes.split(",") if s.strip()],
            min_refresh_interval=max(minimum, 0),
            boot_timestamp=boot_timestamp,
        )
        with self._lock:
            if boot_timestamp == 0:
                self._agents.pop(url, None)
            else:
                self._agents[url] = info
        return info

    def directory_agents(self) -> list[DirectoryAgentInfo]:
        with self._lock:
            return list(self._agents.values())

    def known_scopes(self) -> list[str]:
        """Scopes served by the known DAs, in first-seen order."""
        scopes: list[str] = []
        for agent in self.directory_agents():
            for scope in agent.scopes:
                if scope not in scopes:
                    scopes.append(scope)
        return scopes

    def minimum_refresh_interval(self) -> int:
        """Smallest lifetime that known DAs will accept refreshes for.

        Returns:
            Seconds; 0 when no DA advertises a minimum.
        """
        with self._lock:
            return max((a.min_refresh_interval for a in self._agents.values()), default=0)


_manager = LifetimeManager()


def get_lifetime_manager() -> LifetimeManager:
    """Process-wide lifetime manager shared by handles by default."""
    return _manager


def get_refresh_interval() -> int:
    """Minimum refresh interval advertised to this process, 0 if none."""
    return _manager.minimum_refresh_interval()
