from typing import Optional

from pydantic import BaseModel, ConfigDict


# The Signed-In User a Check-In Screen Acts For
class SessionContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
