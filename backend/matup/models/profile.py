from typing import Optional

from sqlmodel import Field, SQLModel


class Profile(SQLModel, table=True):
    # Keyed by the identity provider's user id
    id: str = Field(primary_key=True)
    name: Optional[str] = Field(default=None)
    avatar_url: Optional[str] = Field(default=None)
