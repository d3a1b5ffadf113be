import asyncio
import base64
import json
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Protocol

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from foodrx_notifier.config.settings import settings
from foodrx_notifier.services.notifications.presentation import (
    DEFAULT_HINTS,
    PlatformHints,
)
from foodrx_notifier.utils.errors import (
    InvalidTokenError,
    ProviderUnavailableError,
    PushDeliveryError,
)
from foodrx_notifier.utils.logging import get_logger

logger = get_logger()

# Android only knows two delivery priorities; the notification channel knows more
_ANDROID_DELIVERY_PRIORITY = {"low": "normal", "normal": "normal", "high": "high"}
_ANDROID_NOTIFICATION_PRIORITY = {"low": "low", "normal": "default", "high": "high"}


@dataclass(frozen=True)
class PushMessage:
    token: str
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)
    hints: PlatformHints = DEFAULT_HINTS


class PushGateway(Protocol):
    async def send(self, message: PushMessage) -> str:
        """Deliver one message; return the provider message id or raise PushDeliveryError."""
        ...


@lru_cache
def get_firebase_app() -> firebase_admin.App:
    """
    Initialize the Firebase Admin SDK once per process.

    Prefers an explicit base64-encoded service account, falling back to
    application default credentials.
    """
    options = {}
    if settings.FIREBASE_PROJECT_ID:
        options["projectId"] = settings.FIREBASE_PROJECT_ID

    if settings.FIREBASE_SERVICE_ACCOUNT_B64:
        service_account = json.loads(
            base64.b64decode(settings.FIREBASE_SERVICE_ACCOUNT_B64).decode("utf-8")
        )
        cred = credentials.Certificate(service_account)
        source = "explicit service account"
    else:
        cred = credentials.ApplicationDefault()
        source = "application default credentials"

    app = firebase_admin.initialize_app(cred, options=options or None)
    logger.info(f"Firebase Admin initialized with {source}")
    return app


class FirebasePushGateway:
    """Sends pushes through Firebase Cloud Messaging."""

    def __init__(self, app: firebase_admin.App):
        self.app = app

    def build_message(self, message: PushMessage) -> messaging.Message:
        hints = message.hints
        return messaging.Message(
            token=message.token,
            notification=messaging.Notification(
                title=message.title, body=message.body
            ),
            data=message.data,
            android=messaging.AndroidConfig(
                priority=_ANDROID_DELIVERY_PRIORITY.get(hints.priority, "high"),
                notification=messaging.AndroidNotification(
                    icon=hints.icon,
                    color=hints.color,
                    priority=_ANDROID_NOTIFICATION_PRIORITY.get(
                        hints.priority, "high"
                    ),
                ),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(badge=hints.badge, sound=hints.sound)
                )
            ),
        )

    async def send(self, message: PushMessage) -> str:
        fcm_message = self.build_message(message)
        try:
            # The SDK call is blocking HTTP; keep it off the event loop
            return await asyncio.to_thread(messaging.send, fcm_message, app=self.app)
        except (
            messaging.UnregisteredError,
            messaging.SenderIdMismatchError,
            exceptions.InvalidArgumentError,
        ) as e:
            raise InvalidTokenError(str(e)) from e
        except (
            messaging.QuotaExceededError,
            exceptions.UnavailableError,
            exceptions.InternalError,
            exceptions.DeadlineExceededError,
        ) as e:
            raise ProviderUnavailableError(str(e)) from e
        except (exceptions.FirebaseError, ValueError) as e:
            raise PushDeliveryError(str(e)) from e


@lru_cache
def get_push_gateway() -> FirebasePushGateway:
    """Process-wide gateway sharing the single Firebase app."""
    return FirebasePushGateway(get_firebase_app())
