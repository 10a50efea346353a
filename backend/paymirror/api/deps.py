"""Dependencies that are used in the API endpoints."""

from fastapi import Request

from paymirror.core.mirror_service import BillingMirror


def get_mirror(request: Request) -> BillingMirror:
    """The mirror the application was started with."""
    return request.app.state.mirror
