"""
Interfaces for the in-page PayPal SDK and the page that hosts it.

The button controller only talks to these, so a browser bridge or a test
double can stand in for the real SDK.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional


class ScriptHost(ABC):
    """The page: knows which globals exist and can load a script tag."""

    @abstractmethod
    def has_global(self, name: str) -> bool:
        """Return True when `window[name]` is defined."""
        pass

    @abstractmethod
    async def load_script(self, src: str) -> None:
        """
        Inject one script tag and wait for it to load.

        Raises:
            Exception: any error when the script fails to load
        """
        pass


class MountPoint(ABC):
    """Container element a button widget is rendered into."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every widget previously rendered into this container."""
        pass


@dataclass
class ButtonConfig:
    """Callback slots and style handed to the SDK's button factory."""
    create_subscription: Callable[[Any, Any], Any]
    on_approve: Callable[[Any], Any]
    on_error: Callable[[Any], Any]
    style: Dict[str, Any] = field(default_factory=lambda: {
        "layout": "horizontal",
        "color": "gold",
        "shape": "pill",
        "height": 40,
    })


class ButtonSdk(ABC):
    """Capability exposed by the loaded SDK global."""

    @abstractmethod
    def render(self, mount: MountPoint, config: ButtonConfig) -> Optional[Awaitable[None]]:
        """
        Render a subscription button into `mount`.

        The SDK later calls `config.create_subscription` when the user
        clicks, then exactly one of `config.on_approve` / `config.on_error`.
        May return an awaitable that completes once the widget is drawn.
        """
        pass
