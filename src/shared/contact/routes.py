"""Contact route forwarding landing-page submissions by email."""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from src.shared.contact.body import read_submission_payload
from src.shared.contact.config import ContactSettings, load_contact_settings
from src.shared.contact.delivery import DeliveryChain, build_delivery_chain, compose_contact_email
from src.shared.contact.errors import (
    ClientError,
    ConfigError,
    ContactAPIError,
    RateLimitExceededError,
)
from src.shared.contact.rate_limit import (
    SlidingWindowRateLimiter,
    build_rate_limit_store,
    get_client_ip,
)
from src.shared.contact.responses import ContactJSONResponse, ok_response
from src.shared.contact.schemas import (
    ContactErrorResponse,
    ContactResponse,
    ContactSubmission,
    validate_submission,
)

router = APIRouter(prefix="/api", tags=["contact"])


@lru_cache()
def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Process-wide limiter; its store lives as long as the process."""
    settings = load_contact_settings()
    store = build_rate_limit_store(settings.rate_limit_redis_url, settings.rate_limit_max_clients)
    return SlidingWindowRateLimiter(store)


def get_delivery_chain(settings: ContactSettings = Depends(load_contact_settings)) -> DeliveryChain:
    return build_delivery_chain(settings)


def _enforce_rate_limit(rate_limiter: SlidingWindowRateLimiter, client_ip: str, settings: ContactSettings) -> None:
    if settings.rate_limit_disabled:
        return
    decision = rate_limiter.check(client_ip, settings.rate_limit_window_seconds, settings.rate_limit_max)
    if not decision.allowed:
        logging.warning(f"Contact rate limit exceeded for {client_ip} ({decision.count} requests in window)")
        raise RateLimitExceededError(decision.retry_after_seconds)


def _require_delivery_addresses(settings: ContactSettings) -> None:
    if not settings.to_email:
        raise ConfigError("TO_EMAIL non configurata")
    if not settings.from_email:
        raise ConfigError("FROM_EMAIL non configurata")


async def _handle_submission(
    request: Request,
    settings: ContactSettings,
    rate_limiter: SlidingWindowRateLimiter,
    delivery_chain: DeliveryChain,
) -> ContactJSONResponse:
    client_ip = get_client_ip(request)
    # Redis-backed stores do network I/O
    await run_in_threadpool(_enforce_rate_limit, rate_limiter, client_ip, settings)

    try:
        payload = await read_submission_payload(request)
    except ClientError as e:
        logging.warning(f"Contact body rejected from {client_ip}: {e.message}")
        raise

    submission = ContactSubmission.model_validate(payload)

    # Honeypot filled: answer like a success without sending anything
    if submission.is_bot:
        logging.info(f"Contact honeypot triggered from {client_ip}")
        return ok_response()

    validate_submission(submission)

    try:
        _require_delivery_addresses(settings)
    except ConfigError as e:
        logging.error(f"Contact endpoint misconfigured: {e.detail}")
        raise

    email = compose_contact_email(submission, client_ip, settings)
    await run_in_threadpool(delivery_chain.deliver, email)
    return ok_response()


@router.post(
    "/contact",
    response_model=ContactResponse,
    response_class=ContactJSONResponse,
    responses={
        400: {"model": ContactErrorResponse},
        429: {"model": ContactErrorResponse},
        500: {"model": ContactErrorResponse},
        502: {"model": ContactErrorResponse},
    },
)
async def submit_contact_form(
    request: Request,
    settings: ContactSettings = Depends(load_contact_settings),
    rate_limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
    delivery_chain: DeliveryChain = Depends(get_delivery_chain),
):
    """
    Forward a landing-page contact submission by email.

    Accepts JSON or URL-encoded ``{name, email, message, _honeypot?}``.
    - In-memory (or Redis) rate limit per client IP
    - Honeypot: a non-empty value is acknowledged without sending
    - Resend API first, SMTP as fallback
    - Always answers ``{"ok": true}`` or ``{"error": "..."}``
    """
    try:
        return await _handle_submission(request, settings, rate_limiter, delivery_chain)
    except ContactAPIError:
        raise
    except Exception as e:
        logging.error(f"Unhandled error in contact handler: {str(e)}", exc_info=True)
        raise ContactAPIError() from e
