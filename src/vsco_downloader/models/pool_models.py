"""
Models for pooled browser contexts.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class ResourceContext:
    """A leased handle to one isolated browser context.

    Identity matters: the pool looks entries up with ``is``, so equality is
    left as object identity.
    """

    context_id: str
    context: Any
    created_at: float
    last_used_at: float
    use_count: int = 0
    in_use: bool = False

    def age(self, now: float) -> float:
        """Seconds since the context was created."""
        return now - self.created_at

    def mark_leased(self, now: float) -> None:
        self.in_use = True
        self.last_used_at = now
        self.use_count += 1

    def mark_released(self) -> None:
        self.in_use = False
