"""Account erasure response schema."""

from pydantic import BaseModel


class AccountDeletedResponse(BaseModel):
    success: bool = True
    message: str = "Account deleted successfully"
