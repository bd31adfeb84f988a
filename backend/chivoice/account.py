# chivoice/account.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from .deps import bad_request, error_response, get_repository
from .errors import ChiVoiceError
from .ledger import apply_referral, profile_summary
from .schemas import ProfileSummary, ReferralInput, ReferralOutput, is_valid_uuid

router = APIRouter(prefix="/account", tags=["account"])


@router.post("/referral", response_model=ReferralOutput)
def referral_route(payload: ReferralInput, repo=Depends(get_repository)):
    """
    Credit the referrer once per referred user.
    Self-referral is rejected (400); a repeated referral returns awarded=false.
    """
    try:
        return apply_referral(
            repo,
            referrer_id=payload.referrer_id,
            referred_user_id=payload.referred_user_id,
        )
    except ChiVoiceError as e:
        return error_response(e)
    except ValueError as e:
        return bad_request(str(e))


@router.get("/profile", response_model=ProfileSummary)
def profile_route(user_id: str = Query(...), repo=Depends(get_repository)):
    if not is_valid_uuid(user_id):
        return bad_request("Invalid user_id format")
    try:
        return profile_summary(repo, user_id)
    except ChiVoiceError as e:
        return error_response(e)
