"""Per-item conflict strategy registry.

Maps item ids (page or category) to a Strategy behind a single lookup
function. Ids without an explicit entry resolve to the default, which is
remote-wins unless configured otherwise. Remote-wins discards local edits
of a conflicting item; operators protect specific items by registering
merge, local-wins or manual for them.
"""

import threading
from typing import Dict, Mapping, Optional, Union

from .models import Strategy

DEFAULT_STRATEGY = Strategy.REMOTE_WINS


class StrategyRegistry:
    """Thread-safe id -> Strategy mapping with a documented default."""

    def __init__(
        self,
        default: Union[Strategy, str] = DEFAULT_STRATEGY,
        overrides: Optional[Mapping[str, Union[Strategy, str]]] = None,
    ):
        self._lock = threading.Lock()
        self.default = _coerce(default)
        self._strategies: Dict[str, Strategy] = {
            item_id: _coerce(strategy)
            for item_id, strategy in (overrides or {}).items()
        }

    def lookup(self, item_id: str) -> Strategy:
        with self._lock:
            return self._strategies.get(item_id, self.default)

    def set(self, item_id: str, strategy: Union[Strategy, str]) -> None:
        with self._lock:
            self._strategies[item_id] = _coerce(strategy)

    def clear(self, item_id: str) -> None:
        with self._lock:
            self._strategies.pop(item_id, None)

    def as_dict(self) -> Dict[str, str]:
        with self._lock:
            return {item_id: strategy.value for item_id, strategy in self._strategies.items()}


def _coerce(strategy: Union[Strategy, str]) -> Strategy:
    if isinstance(strategy, Strategy):
        return strategy
    return Strategy.parse(strategy)
