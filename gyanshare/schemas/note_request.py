from datetime import datetime
from pydantic import BaseModel, Field
from gyanshare.models.note_request import EducationCategory


class NoteRequestCreate(BaseModel):
    """Body for creating a note request. Points are escrowed immediately."""
    category: EducationCategory
    level: str = Field(min_length=1, max_length=50)
    subject: str = Field(min_length=1, max_length=100)
    topic: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=10, max_length=1000)
    points_offered: int = 10


class NoteRequestResponse(BaseModel):
    id: str
    requester_id: str
    category: str
    level: str
    subject: str
    topic: str
    description: str | None
    points_offered: int
    status: str
    created_at: datetime
    expires_at: datetime | None
    fulfilled_by: str | None
    fulfilled_at: datetime | None

    class Config:
        from_attributes = True
