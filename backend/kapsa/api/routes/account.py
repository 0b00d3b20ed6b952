"""API route for account erasure."""

from fastapi import APIRouter

from kapsa.api.deps import CurrentUser, DbSession
from kapsa.schemas.account import AccountDeletedResponse
from kapsa.services.persistence import erase_user_data

router = APIRouter(tags=["account"])


@router.post("/delete-user-data", response_model=AccountDeletedResponse)
async def delete_user_data(
    db: DbSession,
    user: CurrentUser,
):
    """
    Permanently delete the caller's data and identity.

    Removes chat messages and sessions, decks and cards, tests and questions,
    materials, courses, calendar events, usage rows and the profile, then
    the user. The caller's token stops working immediately.
    """
    await erase_user_data(db, user.id)
    return AccountDeletedResponse()
