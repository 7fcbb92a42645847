from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from cabinet.core.errors import InvalidInputError
from cabinet.core.logging import DOMAIN_ONBOARDING, get_domain_logger
from cabinet.models.entities import TutorProfile
from cabinet.services.profile_store import ProfileStore

logger = get_domain_logger(__name__, DOMAIN_ONBOARDING)


class OnboardingStep(IntEnum):
    NOT_STARTED = 0
    STUDENT_ADDED = 1
    LESSON_ADDED = 2
    MATERIAL_ADDED = 3
    COMPLETED = 4


STEP_ORDER = list(OnboardingStep)

# Strict mode: stay put (idempotent retry) or advance exactly one step.
ALLOWED_TRANSITIONS: dict[OnboardingStep, frozenset[OnboardingStep]] = {
    step: frozenset({step, STEP_ORDER[min(idx + 1, len(STEP_ORDER) - 1)]})
    for idx, step in enumerate(STEP_ORDER)
}


@dataclass
class StepChange:
    from_step: int
    to_step: OnboardingStep


class OnboardingTracker:
    """Records first-run progress on the profile.

    By default any step in range is accepted, in any order, because the client
    drives the sequence. With ``enforce_transitions`` only the moves in
    ALLOWED_TRANSITIONS pass.
    """

    def __init__(self, profiles: ProfileStore, *, enforce_transitions: bool = False):
        self._profiles = profiles
        self._enforce_transitions = enforce_transitions

    @staticmethod
    def parse_step(value: int) -> OnboardingStep:
        try:
            return OnboardingStep(value)
        except ValueError:
            raise InvalidInputError(
                f"Onboarding step must be between {OnboardingStep.NOT_STARTED:d} and {OnboardingStep.COMPLETED:d}",
                code="invalid_step",
            ) from None

    def _apply(self, profile: TutorProfile, target: OnboardingStep) -> StepChange:
        current = profile.onboarding_step
        if self._enforce_transitions:
            try:
                allowed = ALLOWED_TRANSITIONS[OnboardingStep(current)]
            except ValueError:
                # Stored value outside the enum (legacy data): only a reset is allowed.
                allowed = frozenset({OnboardingStep.NOT_STARTED})
            if target not in allowed:
                raise InvalidInputError(
                    f"Cannot move onboarding from step {current} to step {target:d}",
                    code="invalid_transition",
                )
        profile.onboarding_step = int(target)
        return StepChange(from_step=current, to_step=target)

    async def set_step(self, identity: str, step: int) -> OnboardingStep:
        target = self.parse_step(step)
        change = await self._profiles.mutate(identity, lambda profile: self._apply(profile, target))
        logger.info(
            "Onboarding step updated | identity=%s | from=%s | to=%s",
            identity,
            change.from_step,
            change.to_step.name,
        )
        return change.to_step
