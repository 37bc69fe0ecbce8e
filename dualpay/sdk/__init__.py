"""
Client-side PayPal SDK integration.

Loader and button controller for the in-page subscription button. The page
itself is reached through the ScriptHost / MountPoint / ButtonSdk interfaces.
"""
from dualpay.sdk.base import ButtonConfig, ButtonSdk, MountPoint, ScriptHost
from dualpay.sdk.buttons import ButtonState, SubscriptionApproval, SubscriptionButtonController
from dualpay.sdk.loader import SdkBootstrap, build_sdk_url
