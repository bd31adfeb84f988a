# chivoice/ledger.py
# Contribution points: per recording, per referral, and the derived profile level.
from __future__ import annotations

from typing import Optional

from .errors import SelfReferralError
from .schemas import Profile, ProfileSummary, ReferralOutput, is_valid_uuid

RECORDING_POINTS = {
    "beginner": 10,
    "intermediate": 20,
    "advanced": 30,
}
DEFAULT_RECORDING_POINTS = 10

REFERRAL_BONUS = 50

# (minimum points, label), highest first
LEVELS = [
    (1000, "Expert"),
    (500, "Advanced"),
    (200, "Intermediate"),
    (0, "Beginner"),
]


def points_for_difficulty(difficulty: Optional[str]) -> int:
    return RECORDING_POINTS.get((difficulty or "").strip().lower(), DEFAULT_RECORDING_POINTS)


def level_for_points(points: int) -> str:
    for minimum, label in LEVELS:
        if points >= minimum:
            return label
    return "Beginner"


def next_level_at(points: int) -> Optional[int]:
    upcoming = [minimum for minimum, _ in LEVELS if minimum > points]
    return min(upcoming) if upcoming else None


def apply_referral(repo, *, referrer_id: str, referred_user_id: str) -> ReferralOutput:
    """
    Record a referral and credit the referrer once.
    A repeated referral of the same user is a no-op (awarded=False).
    """
    referrer_id = (referrer_id or "").strip()
    referred_user_id = (referred_user_id or "").strip()
    if not is_valid_uuid(referrer_id) or not is_valid_uuid(referred_user_id):
        raise ValueError("Invalid user_id format")
    if referrer_id.lower() == referred_user_id.lower():
        raise SelfReferralError()

    referral = repo.create_referral(
        referrer_id=referrer_id,
        referred_user_id=referred_user_id,
        bonus=REFERRAL_BONUS,
    )
    if referral is None:
        print(f"[referral] {referred_user_id} already referred, nothing awarded")
        return ReferralOutput(ok=True, awarded=False, referral=None)

    print(f"[referral] {referrer_id} +{REFERRAL_BONUS} for referring {referred_user_id}")
    return ReferralOutput(ok=True, awarded=True, referral=referral)


def profile_summary(repo, user_id: str) -> ProfileSummary:
    profile = repo.get_profile(user_id) or Profile(id=user_id)
    languages, minutes = repo.profile_contributions(user_id)
    return ProfileSummary(
        ok=True,
        profile=profile,
        level=level_for_points(profile.points),
        languages_recorded=languages,
        contribution_minutes=minutes,
        meta={"next_level_at": next_level_at(profile.points)},
    )
