"""Provider webhook endpoint."""

from fastapi import APIRouter, Depends, Request

from paymirror.api.deps import get_mirror
from paymirror.core.exceptions import PayloadTooLargeError
from paymirror.core.mirror_service import BillingMirror

router = APIRouter()


async def _read_capped_body(request: Request, limit: int) -> bytes:
    """Read the raw body, refusing to buffer more than ``limit`` bytes."""
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError(f"Webhook body exceeds {limit} bytes")
    return bytes(body)


@router.post("/webhook", include_in_schema=False)
async def provider_webhook(
    request: Request,
    mirror: BillingMirror = Depends(get_mirror),
) -> dict[str, bool]:
    """Receive a billing provider webhook.

    The event is verified against the provider's signature header, recorded in
    the ledger and queued before this returns; the mirror is updated shortly
    after.

    Returns:
        200 when the event was accepted or had already been accepted,
        400 when it was rejected, 500 when it could not be recorded
    """
    payload = await _read_capped_body(request, mirror.webhooks.config.max_body_bytes)
    signature = request.headers.get(mirror.provider.signature_header)
    receipt = await mirror.webhooks.receive(payload, signature)
    return {"received": True, "duplicate": receipt.duplicate}
