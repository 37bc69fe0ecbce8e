"""
Subscription button controller.

Drives one PayPal subscription button through

    uninitialized -> sdk_ready -> rendered -> approved | errored

and reports the approval (or the provider's error) back to the host.
"""
import asyncio
import enum
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from dualpay.core.errors import BillingError, ProviderCallbackError, SdkLoadError
from dualpay.sdk.base import ButtonConfig, ButtonSdk, MountPoint
from dualpay.sdk.loader import SdkBootstrap

logger = logging.getLogger(__name__)

_UNSET = object()


class ButtonState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    SDK_READY = "sdk_ready"
    RENDERED = "rendered"
    APPROVED = "approved"
    ERRORED = "errored"


@dataclass(frozen=True)
class SubscriptionApproval:
    """A subscription the user approved in the PayPal popup."""
    subscription_id: str
    plan_id: Optional[str]
    accepted: bool = True


def _member(obj: Any, name: str) -> Any:
    """Read `name` from an SDK object or from a plain mapping."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


class SubscriptionButtonController:
    """Binds a rendered button to the current plan id."""

    def __init__(
        self,
        bootstrap: SdkBootstrap,
        sdk_factory: Callable[[], ButtonSdk],
        client_id: Optional[str],
        currency: str = "USD",
        on_success: Optional[Callable[[SubscriptionApproval], Any]] = None,
        on_error: Optional[Callable[[Any], Any]] = None,
    ):
        self.bootstrap = bootstrap
        self.sdk_factory = sdk_factory
        self.client_id = client_id
        self.currency = currency
        self.on_success = on_success
        self.on_error = on_error

        self.state = ButtonState.UNINITIALIZED
        self._plan_id: Optional[str] = None
        self._mount: Optional[MountPoint] = None
        self._started = False
        self._loading = False
        self._render_seq = 0
        # Plan the provider was last asked to subscribe to
        self._subscribing_plan_id: Optional[str] = None

        self._done = asyncio.Event()
        self._approval: Optional[SubscriptionApproval] = None
        self._failure: Optional[BillingError] = None

    @property
    def plan_id(self) -> Optional[str]:
        return self._plan_id

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id)

    async def start(self) -> ButtonState:
        """
        Load the SDK (if needed) and render once plan and mount are known.

        Without a client id or a plan id nothing is loaded or rendered.
        """
        self._started = True
        await self._sync()
        return self.state

    async def bind(self, plan_id: Any = _UNSET, mount: Any = _UNSET) -> ButtonState:
        """Point the button at another plan and/or container, re-rendering if ready."""
        if plan_id is not _UNSET:
            self._plan_id = plan_id or None
        if mount is not _UNSET:
            self._mount = mount
        if self._started:
            await self._sync()
        return self.state

    async def wait_for_outcome(self) -> SubscriptionApproval:
        """
        Suspend until the provider approves or fails, exactly once.

        Raises:
            SdkLoadError: the SDK script never loaded
            ProviderCallbackError: the SDK reported an error
        """
        await self._done.wait()
        if self._failure is not None:
            raise self._failure
        return self._approval

    async def _sync(self) -> None:
        if self.state in (ButtonState.APPROVED, ButtonState.ERRORED):
            return
        if not self.client_id:
            logger.debug("PayPal client id not configured - subscription button hidden")
            return
        if not self._plan_id:
            if self.state is ButtonState.RENDERED and self._mount is not None:
                self._mount.clear()
                self.state = ButtonState.SDK_READY
            return

        if self.state is ButtonState.UNINITIALIZED:
            if self._loading:
                # The load in progress renders with whatever plan is current
                return
            self._loading = True
            try:
                await self.bootstrap.ensure_loaded(self.client_id, self.currency)
            except SdkLoadError as e:
                self._fail(e, e)
                return
            finally:
                self._loading = False
            self.state = ButtonState.SDK_READY

        await self._render()

    async def _render(self) -> None:
        if not self._plan_id or self._mount is None:
            return
        self._render_seq += 1
        seq = self._render_seq
        mount = self._mount

        mount.clear()
        config = ButtonConfig(
            create_subscription=self._create_subscription,
            on_approve=self._on_approve,
            on_error=self._on_provider_error,
        )
        try:
            result = self.sdk_factory().render(mount, config)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Failed to render PayPal button: {e}")
            mount.clear()
            self._fail(e, ProviderCallbackError(e))
            return

        # A newer render owns the state once it has started
        if seq == self._render_seq and self.state is ButtonState.SDK_READY:
            self.state = ButtonState.RENDERED
        logger.debug(f"Rendered PayPal button: plan_id={self._plan_id}")

    # --- callbacks handed to the SDK -------------------------------------

    def _create_subscription(self, data: Any, actions: Any) -> Any:
        # Read at click time, never the plan captured at render time
        plan_id = self._plan_id
        self._subscribing_plan_id = plan_id
        subscription = _member(actions, "subscription")
        return _member(subscription, "create")({"plan_id": plan_id})

    def _on_approve(self, data: Any) -> None:
        subscription_id = _member(data, "subscriptionID") if data is not None else None
        if not subscription_id:
            # Provider-defined edge case: approval without an id is ignored
            logger.debug("PayPal approval without subscriptionID ignored")
            return
        if self._done.is_set():
            return

        plan_id = self._subscribing_plan_id or self._plan_id
        approval = SubscriptionApproval(subscription_id=subscription_id, plan_id=plan_id)
        self.state = ButtonState.APPROVED
        self._approval = approval
        self._done.set()
        logger.info(f"PayPal subscription approved: subscription_id={subscription_id}, plan_id={plan_id}")
        if self.on_success:
            self.on_success(approval)

    def _on_provider_error(self, err: Any) -> None:
        logger.error(f"PayPal error: {err}")
        self._fail(err, ProviderCallbackError(err))

    def _fail(self, reported: Any, failure: BillingError) -> None:
        if self._done.is_set():
            return
        self.state = ButtonState.ERRORED
        self._failure = failure
        self._done.set()
        if self.on_error:
            self.on_error(reported)
