# src/core/lifecycle.py
"""Lifecycle management for long-lived components.

Provides a centralized manager for startup and shutdown of the
components built by the app factory (sync worker, sync config store).
Hooks may be plain functions or coroutines.

Example:
    >>> from src.core.factory import create_app, register_lifecycle
    >>> from src.core.lifecycle import get_lifecycle_manager
    >>>
    >>> app = create_app()
    >>> lm = get_lifecycle_manager()
    >>> register_lifecycle(app, lm)
    >>> await lm.startup()
    >>> # ... application runs ...
    >>> await lm.shutdown()
"""

import inspect
import logging
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class LifecycleComponent(Protocol):
    """Protocol for components with lifecycle management."""

    def shutdown(self) -> Any:
        """Shutdown the component and release resources."""
        ...


async def _call_hook(component: Any, name: str) -> None:
    result = getattr(component, name)()
    if inspect.isawaitable(result):
        await result


class LifecycleManager:
    """Manages startup and shutdown of registered components."""

    def __init__(self) -> None:
        self._components: list[tuple[str, Any]] = []
        self._started = False

    def register(self, name: str, component: Any) -> None:
        """Register a component. May have start()/startup() and shutdown()."""
        self._components.append((name, component))
        logger.debug("Registered lifecycle component: %s", name)

    async def startup(self) -> None:
        """Start all registered components in order.

        Skips if already started. Components can implement either
        start() or startup() methods, or neither.
        """
        if self._started:
            logger.debug("Lifecycle manager already started")
            return

        for name, component in self._components:
            logger.info("Starting %s", name)
            if hasattr(component, "start"):
                await _call_hook(component, "start")
            elif hasattr(component, "startup"):
                await _call_hook(component, "startup")

        self._started = True
        logger.info(
            "All lifecycle components started (%d total)", len(self._components)
        )

    async def shutdown(self) -> None:
        """Shutdown all registered components in reverse order.

        A failing component is logged and does not stop the others.
        """
        if not self._started:
            logger.debug("Lifecycle manager not started, skipping shutdown")
            return

        for name, component in reversed(self._components):
            logger.info("Stopping %s", name)
            try:
                if hasattr(component, "shutdown"):
                    await _call_hook(component, "shutdown")
            except Exception as e:
                logger.error("Error shutting down %s: %s", name, e)

        self._started = False
        logger.info("All lifecycle components stopped")

    @property
    def is_started(self) -> bool:
        """Check if the manager has started all components.

        Returns:
            True if startup() has been called and completed.
        """
        return self._started

    @property
    def component_count(self) -> int:
        return len(self._components)


# Singleton instance
_lifecycle_manager: LifecycleManager | None = None


def get_lifecycle_manager() -> LifecycleManager:
    """Get the global lifecycle manager singleton.

    Returns:
        The global LifecycleManager instance.
    """
    global _lifecycle_manager
    if _lifecycle_manager is None:
        _lifecycle_manager = LifecycleManager()
    return _lifecycle_manager


def reset_lifecycle_manager() -> None:
    """Reset the global lifecycle manager (for testing).

    Creates a fresh instance on next get_lifecycle_manager() call.
    """
    global _lifecycle_manager
    _lifecycle_manager = None
