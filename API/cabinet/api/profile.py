from fastapi import APIRouter, Depends

from cabinet.api.deps import bearer_token, current_identity, get_services
from cabinet.core.bootstrap import ServiceContainer
from cabinet.schemas.profile import LessonRequest, MaterialRequest, OnboardingStepRequest, StudentRequest

router = APIRouter(tags=["profile"])


@router.get("/profile")
async def get_profile(
    token: str | None = Depends(bearer_token),
    services: ServiceContainer = Depends(get_services),
):
    profile = await services.auth.resolve_session(token)
    return {"profile": profile.to_public()}


@router.post("/onboarding/step")
async def set_onboarding_step(
    payload: OnboardingStepRequest,
    identity: str = Depends(current_identity),
    services: ServiceContainer = Depends(get_services),
):
    step = await services.onboarding.set_step(identity, payload.step)
    return {"success": True, "onboardingStep": int(step)}


@router.post("/students")
async def add_student(
    payload: StudentRequest,
    identity: str = Depends(current_identity),
    services: ServiceContainer = Depends(get_services),
):
    student = await services.entities.add_student(identity, payload.fields())
    return {"success": True, "student": student.to_public()}


@router.post("/lessons")
async def add_lesson(
    payload: LessonRequest,
    identity: str = Depends(current_identity),
    services: ServiceContainer = Depends(get_services),
):
    lesson = await services.entities.add_lesson(identity, payload.fields())
    return {"success": True, "lesson": lesson.to_public()}


@router.post("/materials")
async def add_material(
    payload: MaterialRequest,
    identity: str = Depends(current_identity),
    services: ServiceContainer = Depends(get_services),
):
    material = await services.entities.add_material(identity, payload.fields())
    return {"success": True, "material": material.to_public()}
