from datetime import datetime
from pydantic import BaseModel, Field
from gyanshare.models.fulfillment import VoteType


class NoteResponse(BaseModel):
    """Listing view. The file itself is only reachable through a paid download."""
    id: str
    uploader_id: str
    category: str
    level: str
    subject: str
    topic: str
    tags: list[str]
    file_type: str
    file_size: int
    upvotes: int = 0
    downvotes: int = 0
    trust_score: int = 0
    download_cost: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class NoteUploadResponse(BaseModel):
    message: str
    note: NoteResponse
    file_url: str
    points_awarded: int


class NoteDetailResponse(BaseModel):
    note: NoteResponse
    user_vote: str | None = None
    is_saved: bool = False


class NoteVoteBody(BaseModel):
    vote_type: VoteType


class NoteVoteResponse(BaseModel):
    message: str
    user_vote: str | None
    upvotes: int
    downvotes: int
    trust_score: int


class DownloadResponse(BaseModel):
    file_url: str
    points_spent: int


class ReportBody(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class SavedNoteResponse(BaseModel):
    saved_at: datetime
    note: NoteResponse


class SearchRequest(BaseModel):
    query: str = Field(min_length=1, max_length=500)
    category: str | None = None
    level: str | None = None


class SearchResponse(BaseModel):
    notes: list[NoteResponse]
