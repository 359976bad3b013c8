"""
Module unlock evaluation.

Unlock state is never stored. It is derived on every request from the
enrollment window and each module's `duration_in_days` offset:

    unlocked_at = enrollment_date + duration_in_days (calendar days)
    is_unlocked = now >= unlocked_at

An inactive or expired enrollment locks everything, and modules that are
not ACTIVE never unlock.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from learnhub.core.clock import ensure_utc
from learnhub.models.enums import ModuleStatus


@dataclass(frozen=True)
class EnrollmentWindow:
    enrollment_date: datetime
    expiry_date: datetime
    is_active: bool

    @classmethod
    def from_enrollment(cls, enrollment) -> "EnrollmentWindow":
        return cls(
            enrollment_date=ensure_utc(enrollment.enrollment_date),
            expiry_date=ensure_utc(enrollment.expiry_date),
            is_active=enrollment.is_active,
        )

    def grants_access(self, now: datetime) -> bool:
        return self.is_active and ensure_utc(now) <= self.expiry_date


@dataclass(frozen=True)
class ModuleSchedule:
    module_id: int
    order: int
    duration_in_days: int
    status: ModuleStatus

    @classmethod
    def from_module(cls, module) -> "ModuleSchedule":
        return cls(
            module_id=module.id,
            order=module.order,
            duration_in_days=module.duration_in_days,
            status=ModuleStatus(module.status),
        )


@dataclass(frozen=True)
class ModuleUnlockState:
    module: ModuleSchedule
    unlocked_at: datetime
    is_unlocked: bool


def compute_unlocked_modules(
    enrollment: EnrollmentWindow,
    modules: Iterable[ModuleSchedule],
    now: datetime,
) -> list[ModuleUnlockState]:
    """Evaluate every module of a course for one enrollment, in ascending order."""
    now = ensure_utc(now)
    has_access = enrollment.grants_access(now)

    states = []
    for module in sorted(modules, key=lambda m: (m.order, m.module_id)):
        unlocked_at = enrollment.enrollment_date + timedelta(days=module.duration_in_days)
        is_unlocked = (
            has_access
            and module.status == ModuleStatus.ACTIVE
            and now >= unlocked_at
        )
        states.append(
            ModuleUnlockState(module=module, unlocked_at=unlocked_at, is_unlocked=is_unlocked)
        )

    return states


def unlocked_module_ids(states: Iterable[ModuleUnlockState]) -> set[int]:
    return {state.module.module_id for state in states if state.is_unlocked}
