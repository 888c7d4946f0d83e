from datetime import datetime

from pydantic import BaseModel, Field

from cafe_ledger.models.user import UserRole


class UserOut(BaseModel):
    id: int
    external_id: str
    email: str
    name: str
    role: UserRole
    created_at: datetime

    model_config = {"from_attributes": True}


class UserRoleUpdate(BaseModel):
    role: UserRole


class BootstrapAdminRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
