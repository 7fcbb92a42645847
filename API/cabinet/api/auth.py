from fastapi import APIRouter, Depends

from cabinet.api.deps import bearer_token, get_services
from cabinet.core.bootstrap import ServiceContainer
from cabinet.schemas.auth import LoginRequest, RegisterRequest
from cabinet.services.auth_service import Registration

router = APIRouter(tags=["auth"])


@router.post("/register")
async def register(payload: RegisterRequest, services: ServiceContainer = Depends(get_services)):
    identity = await services.auth.register(
        Registration(
            phone=payload.phone,
            password=payload.password,
            full_name=payload.full_name,
            subjects=payload.subjects,
            city=payload.city,
            experience=payload.experience,
            levels=payload.levels,
            format=payload.format,
            rate=payload.rate,
        )
    )
    return {"success": True, "identity": identity, "message": "Cabinet created"}


@router.post("/login")
async def login(payload: LoginRequest, services: ServiceContainer = Depends(get_services)):
    result = await services.auth.login(payload.phone, payload.password)
    return {"success": True, "token": result.token, "profile": result.profile.to_public()}


@router.post("/logout")
async def logout(
    token: str | None = Depends(bearer_token),
    services: ServiceContainer = Depends(get_services),
):
    await services.auth.logout(token)
    return {"success": True}
