"""
Trigger authentication for the reminder endpoint.

Each strategy answers one question: does this request come from our
scheduler? Deployments pick a combination through REMINDER_AUTH_MODE.

Accepting every request when CRON_SECRET is unset is deliberate for
unconfigured environments. check_required_env_vars warns about it at
startup and UnconfiguredFallbackAuthenticator logs every time it applies.
"""

import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import Mapping

import jwt

from .config import DispatchConfig

logger = logging.getLogger(__name__)

SCHEDULER_HEADER = "x-vercel-cron"
SCHEDULER_SENTINEL = "1"
SIGNATURE_HEADER = "upstash-signature"
SIGNATURE_ISSUER = "Upstash"


class TriggerAuthError(Exception):
    """Raised when a trigger request is not accepted."""

    pass


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails."""

    pass


@dataclass(frozen=True)
class TriggerRequest:
    """What authenticators may look at. Header names are lower-cased."""

    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    @classmethod
    def build(cls, headers: Mapping[str, str], body: bytes = b"", url: str = ""):
        return cls(
            headers={key.lower(): value for key, value in headers.items()},
            body=body,
            url=url,
        )

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


class TriggerAuthenticator:
    """Strategy interface: authenticate(request) -> accepted?"""

    name = "base"

    def authenticate(self, request: TriggerRequest) -> bool:
        raise NotImplementedError


class BearerSecretAuthenticator(TriggerAuthenticator):
    """Accepts `Authorization: Bearer <secret>` matching the shared secret."""

    name = "bearer"

    def __init__(self, secret: str | None):
        self.secret = secret

    def authenticate(self, request: TriggerRequest) -> bool:
        if not self.secret:
            return False
        provided = request.header("authorization") or ""
        expected = f"Bearer {self.secret}"
        return hmac.compare_digest(provided.encode(), expected.encode())


class SchedulerHeaderAuthenticator(TriggerAuthenticator):
    """Accepts requests carrying the scheduler identity header (x-vercel-cron: 1)."""

    name = "scheduler_header"

    def __init__(self, header: str = SCHEDULER_HEADER, sentinel: str = SCHEDULER_SENTINEL):
        self.header_name = header
        self.sentinel = sentinel

    def authenticate(self, request: TriggerRequest) -> bool:
        return request.header(self.header_name) == self.sentinel


def body_hash(body: bytes) -> str:
    """Unpadded base64url SHA-256 of the raw body, as carried in the JWT."""
    digest = hashlib.sha256(body).digest()
    return base64.urlsafe_b64encode(digest).decode().rstrip("=")


def verify_webhook_signature(
    token: str,
    body: bytes,
    signing_keys: tuple[str, ...],
    url: str | None = None,
    leeway: float = 5.0,
) -> dict:
    """
    Verify an Upstash-Signature JWT against the current and next keys.

    Args:
        token: Value of the Upstash-Signature header
        body: Raw request body bytes
        signing_keys: Current key first, then next key
        url: Request URL to match against the `sub` claim, if known

    Returns:
        Verified claims

    Raises:
        WebhookSignatureError: If no key verifies the token or a claim mismatches
    """
    if not signing_keys:
        raise WebhookSignatureError("No signing keys configured")

    last_error: Exception | None = None
    for key in signing_keys:
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=["HS256"],
                issuer=SIGNATURE_ISSUER,
                leeway=leeway,
                options={"require": ["iss", "exp", "nbf"], "verify_aud": False},
            )
        except jwt.PyJWTError as e:
            last_error = e
            continue

        if url and claims.get("sub") and claims["sub"] != url:
            raise WebhookSignatureError(
                f"Signature subject {claims['sub']!r} does not match {url!r}"
            )
        if (claims.get("body") or "").rstrip("=") != body_hash(body):
            raise WebhookSignatureError("Body hash does not match signature")
        return claims

    raise WebhookSignatureError(f"Signature verification failed: {last_error}")


class SignedWebhookAuthenticator(TriggerAuthenticator):
    """
    Verifies the scheduler's signed-webhook header.

    Lenient (the default for signed mode) logs a missing or bad signature
    and still accepts; strict rejects it.
    """

    name = "signed_webhook"

    def __init__(
        self,
        signing_keys: tuple[str, ...],
        strict: bool = False,
        verify_url: bool = True,
    ):
        self.signing_keys = signing_keys
        self.strict = strict
        self.verify_url = verify_url

    def authenticate(self, request: TriggerRequest) -> bool:
        if not self.signing_keys:
            if self.strict:
                logger.warning("Signed trigger required but no signing keys configured")
                return False
            return True

        signature = request.header(SIGNATURE_HEADER)
        if not signature:
            logger.warning("No webhook signature found on reminder trigger")
            return not self.strict

        try:
            verify_webhook_signature(
                signature,
                request.body,
                self.signing_keys,
                url=request.url if self.verify_url else None,
            )
        except WebhookSignatureError as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            return not self.strict

        logger.info("Webhook signature verified")
        return True


class UnconfiguredFallbackAuthenticator(TriggerAuthenticator):
    """Accepts everything while no shared secret is configured."""

    name = "unconfigured_fallback"

    def __init__(self, secret: str | None):
        self.secret = secret

    def authenticate(self, request: TriggerRequest) -> bool:
        if self.secret:
            return False
        logger.warning(
            "CRON_SECRET is not set; accepting unauthenticated reminder trigger"
        )
        return True


class AnyOfAuthenticator(TriggerAuthenticator):
    """Accepts when any member strategy accepts, trying them in order."""

    name = "any_of"

    def __init__(self, *strategies: TriggerAuthenticator):
        self.strategies = strategies

    def authenticate(self, request: TriggerRequest) -> bool:
        for strategy in self.strategies:
            if strategy.authenticate(request):
                logger.debug(f"Reminder trigger accepted by {strategy.name}")
                return True
        return False


def build_authenticator(config: DispatchConfig) -> TriggerAuthenticator:
    """
    Select the trigger authenticator for this deployment.

    Modes:
        cron:   bearer secret, scheduler header, or no secret configured
        signed: signed webhook only (lenient unless REMINDER_STRICT_SIGNATURE)
        any:    all of the above, where a signature only counts if it verifies
    """
    bearer = BearerSecretAuthenticator(config.cron_secret)
    header = SchedulerHeaderAuthenticator()
    fallback = UnconfiguredFallbackAuthenticator(config.cron_secret)

    if config.auth_mode == "cron":
        return AnyOfAuthenticator(bearer, header, fallback)
    if config.auth_mode == "signed":
        return SignedWebhookAuthenticator(
            config.signing_keys, strict=config.strict_signature
        )
    strategies: list[TriggerAuthenticator] = [bearer, header]
    if config.signing_keys:
        strategies.append(SignedWebhookAuthenticator(config.signing_keys, strict=True))
    strategies.append(fallback)
    return AnyOfAuthenticator(*strategies)


def require_trigger(authenticator: TriggerAuthenticator, request: TriggerRequest) -> None:
    """
    Raises:
        TriggerAuthError: If the authenticator rejects the request
    """
    if not authenticator.authenticate(request):
        raise TriggerAuthError("Unauthorized")
