"""
Single-flight loader for the PayPal JS SDK.
"""
import asyncio
import logging
from typing import Optional
from urllib.parse import urlencode

from dualpay.core.errors import SdkLoadError
from dualpay.sdk.base import ScriptHost

logger = logging.getLogger(__name__)

SDK_BASE_URL = "https://www.paypal.com/sdk/js"


def build_sdk_url(client_id: str, currency: str = "USD") -> str:
    """SDK script URL configured for vaulted subscription buttons."""
    query = urlencode({
        "client-id": client_id,
        "vault": "true",
        "intent": "subscription",
        "components": "buttons",
        "currency": currency,
    })
    return f"{SDK_BASE_URL}?{query}"


class SdkBootstrap:
    """
    Loads the SDK script at most once per page lifetime.

    Concurrent callers that arrive while the script is loading await the same
    in-flight task instead of injecting another tag.
    """

    def __init__(self, host: ScriptHost, global_name: str = "paypal"):
        self.host = host
        self.global_name = global_name
        self._inflight: Optional[asyncio.Task] = None

    @property
    def is_loaded(self) -> bool:
        return self.host.has_global(self.global_name)

    async def ensure_loaded(self, client_id: str, currency: str = "USD") -> None:
        """
        Resolve once the SDK global is available.

        Raises:
            SdkLoadError: the script failed to load, or loaded without
                defining the global
        """
        if self.is_loaded:
            return

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._load(build_sdk_url(client_id, currency)))
            self._inflight.add_done_callback(self._forget_failed)

        # shield: one caller giving up must not cancel the load for the others
        await asyncio.shield(self._inflight)

    async def _load(self, src: str) -> None:
        logger.info(f"Loading PayPal SDK: {src}")
        try:
            await self.host.load_script(src)
        except SdkLoadError:
            raise
        except Exception as e:
            logger.error(f"Failed to load PayPal SDK: {e}")
            raise SdkLoadError(f"Failed to load PayPal SDK: {e}", src=src) from e

        if not self.is_loaded:
            raise SdkLoadError(f"PayPal SDK loaded but window.{self.global_name} is missing", src=src)

    def _forget_failed(self, task: asyncio.Task) -> None:
        # A failed load is not retried here; a later caller may try again
        if task.cancelled() or task.exception() is not None:
            if self._inflight is task:
                self._inflight = None
