from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class StageCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    position: Optional[int] = Field(None, ge=0)
    color: Optional[str] = None


class StageUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    position: Optional[int] = Field(None, ge=0)
    color: Optional[str] = None


class Stage(BaseModel):
    id: int
    title: str
    position: int
    color: Optional[str] = None
    project_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StageWithCount(Stage):
    feature_count: int = 0
