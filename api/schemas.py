from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class LoginModel(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    uid: str
    email: str
    id_token: str = ""
    is_admin: bool = False


class EditFieldModel(BaseModel):
    page: Optional[int] = Field(default=None, ge=1, description="Page the row was shown on; defaults to the current page.")
    row: int = Field(ge=0)
    field: str
    value: str = ""


class RefreshResponse(BaseModel):
    ok: bool
    total_records: int
    error: Optional[str] = None


class MetaOptionsResponse(BaseModel):
    columns: List[str]
    editable_fields: List[str]
    status_options: List[str]
    staff_options: List[str]
    page_size: int
