from datetime import datetime
from pydantic import BaseModel
from gyanshare.models.fulfillment import VoteType


class FulfillmentResponse(BaseModel):
    id: str
    request_id: str
    uploader_id: str
    file_url: str
    file_type: str
    file_size: int
    status: str
    validation_passed: bool | None
    validation_errors: list[str] | None
    upvotes: int
    downvotes: int
    auto_review_at: datetime | None
    created_at: datetime
    reviewed_at: datetime | None

    class Config:
        from_attributes = True


class PendingFulfillmentResponse(FulfillmentResponse):
    """Fulfillment plus the request it answers (requester's review queue)."""
    request_topic: str
    request_subject: str
    points_offered: int


class FulfillmentReview(BaseModel):
    """Body for requester approve/reject."""
    approved: bool


class FulfillmentVoteBody(BaseModel):
    vote_type: VoteType
