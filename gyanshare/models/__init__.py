from gyanshare.models.profile import Profile
from gyanshare.models.points import PointsEntry, PointsReason
from gyanshare.models.note_request import NoteRequest, RequestStatus, EducationCategory
from gyanshare.models.fulfillment import (
    RequestFulfillment, FulfillmentStatus, FulfillmentVote, VoteType, VoteActivity,
)
from gyanshare.models.note import Note, NoteReport, NoteVote, SavedNote
from gyanshare.models.referral import Referral, ReferralStatus

__all__ = [
    "Profile", "PointsEntry", "PointsReason", "NoteRequest", "RequestStatus", "EducationCategory",
    "RequestFulfillment", "FulfillmentStatus", "FulfillmentVote", "VoteType", "VoteActivity",
    "Note", "NoteVote", "NoteReport", "SavedNote", "Referral", "ReferralStatus",
]
