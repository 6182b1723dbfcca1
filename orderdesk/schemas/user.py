# orderdesk/schemas/user.py
import uuid

from pydantic import EmailStr, ConfigDict
from sqlmodel import SQLModel


class AuthenticatedUser(SQLModel):
    """
    Operator identity taken from a verified Supabase access token.

    Nothing is stored locally; the token claims are the whole profile.
    """

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    email: EmailStr
