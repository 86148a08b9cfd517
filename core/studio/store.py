"""Process-wide design parameter store with change notification."""

import logging
import threading
from typing import Callable, List, Optional

from core.fabrication.params import DesignParams

logger = logging.getLogger(__name__)

ParamsListener = Callable[[DesignParams], None]


class ParameterStore:
    """Holds the current DesignParams snapshot and notifies subscribers on change."""

    def __init__(self, params: Optional[DesignParams] = None):
        """
        Initialize the store.

        Args:
            params: Initial snapshot (defaults to DesignParams())

        Raises:
            ValueError: If the initial snapshot is out of range
        """
        self._params = (params or DesignParams()).validate()
        self._listeners: List[ParamsListener] = []
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> DesignParams:
        """The current immutable parameter snapshot."""
        with self._lock:
            return self._params

    def subscribe(self, listener: ParamsListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Callable that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def update(self, **changes) -> DesignParams:
        """
        Apply parameter changes and notify listeners if anything changed.

        Raises:
            ValueError: If a name is unknown or a value is out of range
        """
        with self._lock:
            current = self._params
        return self.replace(current.with_changes(**changes))

    def replace(self, params: DesignParams) -> DesignParams:
        """Install a whole new snapshot."""
        params.validate()
        with self._lock:
            if params == self._params:
                return params
            self._params = params
            listeners = list(self._listeners)

        logger.info(f"Design parameters changed: {params.furniture_type.value}/{params.pattern.value}")
        for listener in listeners:
            listener(params)
        return params
