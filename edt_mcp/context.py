"""Server context shared by the transport and the protocol handler.

One context is created per server start. It carries the configuration,
the tool registry and the process counters, so handlers never reach for
module-level singletons and tests can build isolated contexts.
"""

import threading
from dataclasses import dataclass, field

from .config import Settings, settings as default_settings
from .tools.registry import ToolRegistry


class AtomicCounter:
    """Thread-safe monotonically increasing counter."""

    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Increment and return the new value."""
        with self._lock:
            self._value += 1
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = 0

    @property
    def value(self) -> int:
        return self._value


@dataclass
class ServerContext:
    """State shared by every request handled by one server instance."""

    settings: Settings = field(default_factory=lambda: default_settings)
    registry: ToolRegistry = field(default_factory=ToolRegistry)

    # Accepted POST /mcp requests; owned by the server so it survives restarts
    request_counter: AtomicCounter = field(default_factory=AtomicCounter)

    # SSE event ids; owned by the server so ids never repeat after a restart
    event_counter: AtomicCounter = field(default_factory=AtomicCounter)
