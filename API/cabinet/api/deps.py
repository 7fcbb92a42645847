from fastapi import Depends, Header, Request

from cabinet.core.bootstrap import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def bearer_token(authorization: str | None = Header(None)) -> str | None:
    """Token from ``Authorization: Bearer <token>``; None when absent or another scheme."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def current_identity(
    token: str | None = Depends(bearer_token),
    services: ServiceContainer = Depends(get_services),
) -> str:
    return await services.auth.resolve_identity(token)
