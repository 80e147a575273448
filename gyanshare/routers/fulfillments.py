"""
Fulfillment review:
- requester sees pending fulfillments for their requests and approves/rejects
- community votes on fulfillments in community review
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from gyanshare.auth import get_current_user
from gyanshare.database import get_db
from gyanshare.models.profile import Profile
from gyanshare.routers.requests import get_workflow
from gyanshare.schemas.fulfillment import (
    FulfillmentResponse,
    FulfillmentReview,
    FulfillmentVoteBody,
    PendingFulfillmentResponse,
)
from gyanshare.services import fulfillment_store
from gyanshare.services.workflow import RequestWorkflow

router = APIRouter(prefix="/api/fulfillments", tags=["fulfillments"])


@router.get("/pending", response_model=list[PendingFulfillmentResponse])
def list_pending(
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Fulfillments awaiting my approval or in community review, for my requests."""
    rows = fulfillment_store.list_pending_for_requester(db, user.id)
    return [
        PendingFulfillmentResponse(
            **FulfillmentResponse.model_validate(f).model_dump(),
            request_topic=req.topic,
            request_subject=req.subject,
            points_offered=req.points_offered,
        )
        for f, req in rows
    ]


@router.get("/community", response_model=list[FulfillmentResponse])
def list_community_review(db: Session = Depends(get_db)):
    """Fulfillments open for community voting."""
    return [FulfillmentResponse.model_validate(f) for f in fulfillment_store.list_in_community_review(db)]


@router.get("/{fulfillment_id}", response_model=FulfillmentResponse)
def get_fulfillment(fulfillment_id: str, db: Session = Depends(get_db)):
    return FulfillmentResponse.model_validate(fulfillment_store.get_fulfillment(db, fulfillment_id))


@router.post("/{fulfillment_id}/review", response_model=FulfillmentResponse)
def review_fulfillment(
    fulfillment_id: str,
    body: FulfillmentReview,
    user: Profile = Depends(get_current_user),
    workflow: RequestWorkflow = Depends(get_workflow),
):
    """
    Requester approves or rejects. Approve pays the uploader and closes the request;
    reject keeps the request open for other fulfillers.
    """
    return FulfillmentResponse.model_validate(workflow.process_approval(fulfillment_id, body.approved, user.id))


@router.post("/{fulfillment_id}/vote", response_model=FulfillmentResponse)
def vote(
    fulfillment_id: str,
    body: FulfillmentVoteBody,
    user: Profile = Depends(get_current_user),
    workflow: RequestWorkflow = Depends(get_workflow),
):
    """Upvote/downvote (one vote per user, re-voting changes it). May resolve the fulfillment."""
    return FulfillmentResponse.model_validate(workflow.vote(fulfillment_id, user.id, body.vote_type))


@router.delete("/{fulfillment_id}/vote", response_model=FulfillmentResponse)
def unvote(
    fulfillment_id: str,
    user: Profile = Depends(get_current_user),
    workflow: RequestWorkflow = Depends(get_workflow),
):
    return FulfillmentResponse.model_validate(workflow.unvote(fulfillment_id, user.id))


@router.post("/{fulfillment_id}/check", response_model=FulfillmentResponse)
def check_community_validation(
    fulfillment_id: str,
    _user: Profile = Depends(get_current_user),
    workflow: RequestWorkflow = Depends(get_workflow),
):
    """Re-evaluate community votes for a fulfillment."""
    return FulfillmentResponse.model_validate(workflow.check_community_validation(fulfillment_id))
