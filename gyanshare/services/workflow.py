"""
Request fulfillment workflow: create -> submit -> review/vote -> settle, plus
cancellation and the expiry / auto-review sweep.

Every public method is one database transaction: commit on success, rollback
and re-raise on any error. Settlement (approve fulfillment, close request,
credit uploader, reject competing fulfillments) happens inside that single
transaction; closing the request is a compare-and-set on status, so only the
first approval for a request settles.
"""
import logging
import uuid
from datetime import datetime
from typing import Callable
from sqlalchemy.orm import Session

from gyanshare.database import transaction
from gyanshare.errors import (
    AlreadyResolved,
    GyanError,
    InvalidFile,
    NotAuthorized,
    VotingClosed,
)
from gyanshare.models.fulfillment import FulfillmentStatus, RequestFulfillment, VoteType
from gyanshare.models.note_request import NoteRequest, RequestStatus
from gyanshare.models.points import PointsReason
from gyanshare.services import fulfillment_store, points_ledger, request_store, storage
from gyanshare.services import validation_engine as engine
from gyanshare.utils.clock import utcnow

logger = logging.getLogger(__name__)

REQUEST_ALREADY_FULFILLED = "Request already fulfilled"
REQUEST_CLOSED = "Request closed before review"


class RequestWorkflow:
    """Orchestrates the request store, fulfillment store, validation engine and ledger."""

    def __init__(
        self,
        db: Session,
        store_file: Callable[[bytes, str], str] = storage.store,
        remove_file: Callable[[str], None] = storage.remove,
    ):
        self.db = db
        self.store_file = store_file
        self.remove_file = remove_file

    def _transaction(self):
        return transaction(self.db)

    # ---------- Requests ----------

    def create_request(
        self,
        requester_id: str,
        category: str,
        level: str,
        subject: str,
        topic: str,
        description: str | None,
        points_offered: int,
        *,
        now: datetime | None = None,
    ) -> NoteRequest:
        with self._transaction():
            req = request_store.create_request(
                self.db, requester_id, category, level, subject, topic, description, points_offered, now=now,
            )
        return req

    def cancel_request(self, request_id: str, actor_id: str, *, now: datetime | None = None) -> NoteRequest:
        with self._transaction():
            req = request_store.get_request(self.db, request_id)
            if req.requester_id != actor_id:
                raise NotAuthorized("Only the requester can cancel this request.")
            request_store.cancel_or_expire(self.db, request_id, RequestStatus.CANCELLED)
            self._reject_pending(req, REQUEST_CLOSED, now=now)
        return req

    # ---------- Fulfillments ----------

    def submit_fulfillment(
        self,
        request_id: str,
        uploader_id: str,
        content_type: str | None,
        data: bytes,
        *,
        now: datetime | None = None,
    ) -> RequestFulfillment:
        """
        Validate and store a fulfillment file. Invalid files raise InvalidFile
        and leave nothing behind (no stored bytes, no row).
        """
        now = now or utcnow()
        req = request_store.get_request(self.db, request_id)
        if req.status != RequestStatus.OPEN.value:
            raise AlreadyResolved(f"Request is already {req.status}.")
        if req.requester_id == uploader_id:
            raise NotAuthorized("You cannot fulfill your own request.")
        errors = fulfillment_store.check_file(content_type, len(data))
        if errors:
            raise InvalidFile(errors)

        key = f"fulfillments/{uploader_id}/{uuid.uuid4().hex}.pdf"
        file_url = self.store_file(data, key)
        try:
            with self._transaction():
                fulfillment = fulfillment_store.submit(
                    self.db, req, uploader_id, file_url, fulfillment_store.PDF_CONTENT_TYPE, len(data), now=now,
                )
                engine.initial_disposition(fulfillment, now=now)
        except Exception:
            self.remove_file(key)
            raise
        logger.info("Fulfillment %s submitted for request %s (%s)", fulfillment.id, request_id, fulfillment.status)
        return fulfillment

    def process_approval(
        self,
        fulfillment_id: str,
        approved: bool,
        reviewer_id: str,
        *,
        now: datetime | None = None,
    ) -> RequestFulfillment:
        """Requester approves (settle) or rejects (request stays open)."""
        with self._transaction():
            fulfillment = fulfillment_store.get_fulfillment(self.db, fulfillment_id)
            req = request_store.get_request(self.db, fulfillment.request_id)
            if req.requester_id != reviewer_id:
                raise NotAuthorized("Only the requester can review this fulfillment.")
            if approved:
                self._settle(fulfillment, req, now=now)
            else:
                engine.transition(fulfillment, FulfillmentStatus.REJECTED, now=now)
                logger.info("Fulfillment %s rejected by requester", fulfillment.id)
        return fulfillment

    def vote(
        self,
        fulfillment_id: str,
        voter_id: str,
        vote_type: VoteType,
        *,
        now: datetime | None = None,
    ) -> RequestFulfillment:
        now = now or utcnow()
        with self._transaction():
            fulfillment, req = self._votable(fulfillment_id, voter_id)
            fulfillment_store.check_vote_rate(self.db, voter_id, now=now)
            fulfillment_store.record_activity(self.db, voter_id, fulfillment.id, vote_type.value, now=now)
            fulfillment_store.vote(self.db, fulfillment, voter_id, vote_type)
            self._apply_community_verdict(fulfillment, req, now=now)
        return fulfillment

    def unvote(self, fulfillment_id: str, voter_id: str, *, now: datetime | None = None) -> RequestFulfillment:
        now = now or utcnow()
        with self._transaction():
            fulfillment, req = self._votable(fulfillment_id, voter_id)
            fulfillment_store.check_vote_rate(self.db, voter_id, now=now)
            fulfillment_store.record_activity(
                self.db, voter_id, fulfillment.id, fulfillment_store.UNVOTE, now=now,
            )
            fulfillment_store.unvote(self.db, fulfillment, voter_id)
            self._apply_community_verdict(fulfillment, req, now=now)
        return fulfillment

    def check_community_validation(self, fulfillment_id: str, *, now: datetime | None = None) -> RequestFulfillment:
        """Recount votes and resolve the fulfillment if a threshold is crossed."""
        with self._transaction():
            fulfillment = fulfillment_store.get_fulfillment(self.db, fulfillment_id)
            if engine.is_terminal(fulfillment):
                raise AlreadyResolved(f"Fulfillment is already {fulfillment.status}.")
            req = request_store.get_request(self.db, fulfillment.request_id)
            fulfillment_store.recount_votes(self.db, fulfillment)
            self._apply_community_verdict(fulfillment, req, now=now)
        return fulfillment

    # ---------- Sweep ----------

    def sweep(self, now: datetime | None = None) -> dict[str, int]:
        """
        Expire overdue open requests (refund), resolve overdue community reviews
        with the auto-review default, and hand overdue awaiting_approval
        fulfillments to the community. Each item is its own transaction.
        """
        now = now or utcnow()
        counts = {"expired": 0, "auto_resolved": 0, "escalated": 0}

        overdue_requests = (
            self.db.query(NoteRequest.id)
            .filter(
                NoteRequest.status == RequestStatus.OPEN.value,
                NoteRequest.expires_at.isnot(None),
                NoteRequest.expires_at <= now,
            )
            .all()
        )
        for (request_id,) in overdue_requests:
            if self._sweep_item(self._expire_request, request_id, now):
                counts["expired"] += 1

        for status, key, action in (
            (FulfillmentStatus.COMMUNITY_REVIEW, "auto_resolved", self._auto_resolve),
            (FulfillmentStatus.AWAITING_APPROVAL, "escalated", self._escalate),
        ):
            due = (
                self.db.query(RequestFulfillment.id)
                .filter(
                    RequestFulfillment.status == status.value,
                    RequestFulfillment.auto_review_at.isnot(None),
                    RequestFulfillment.auto_review_at <= now,
                )
                .all()
            )
            for (fulfillment_id,) in due:
                if self._sweep_item(action, fulfillment_id, now):
                    counts[key] += 1

        if any(counts.values()):
            logger.info("Sweep: %s", counts)
        return counts

    def _sweep_item(self, action: Callable[[str, datetime], None], item_id: str, now: datetime) -> bool:
        try:
            with self._transaction():
                action(item_id, now)
        except GyanError as e:
            # Raced with a user action; the item is no longer due
            logger.warning("Sweep skipped %s: %s", item_id, e.detail)
            return False
        return True

    def _expire_request(self, request_id: str, now: datetime) -> None:
        req = request_store.cancel_or_expire(self.db, request_id, RequestStatus.EXPIRED)
        self._reject_pending(req, REQUEST_CLOSED, now=now)

    def _escalate(self, fulfillment_id: str, now: datetime) -> None:
        fulfillment = fulfillment_store.get_fulfillment(self.db, fulfillment_id)
        engine.escalate_to_community(fulfillment, now=now)
        logger.info("Fulfillment %s moved to community review", fulfillment_id)

    def _auto_resolve(self, fulfillment_id: str, now: datetime) -> None:
        fulfillment = fulfillment_store.get_fulfillment(self.db, fulfillment_id)
        req = request_store.get_request(self.db, fulfillment.request_id)
        fulfillment_store.recount_votes(self.db, fulfillment)
        target = engine.community_verdict(fulfillment.upvotes, fulfillment.downvotes) or engine.auto_review_default()
        if target == FulfillmentStatus.APPROVED and req.status == RequestStatus.OPEN.value:
            self._settle(fulfillment, req, now=now)
        else:
            engine.transition(fulfillment, FulfillmentStatus.REJECTED, now=now)
        logger.info("Fulfillment %s auto-reviewed: %s", fulfillment_id, fulfillment.status)

    # ---------- Internals ----------

    def _votable(self, fulfillment_id: str, voter_id: str) -> tuple[RequestFulfillment, NoteRequest]:
        fulfillment = fulfillment_store.get_fulfillment(self.db, fulfillment_id)
        if engine.is_terminal(fulfillment):
            raise AlreadyResolved(f"Fulfillment is already {fulfillment.status}.")
        if fulfillment.status != FulfillmentStatus.COMMUNITY_REVIEW.value:
            raise VotingClosed()
        req = request_store.get_request(self.db, fulfillment.request_id)
        if voter_id in (fulfillment.uploader_id, req.requester_id):
            raise NotAuthorized("You cannot vote on a fulfillment you are part of.")
        return fulfillment, req

    def _apply_community_verdict(
        self,
        fulfillment: RequestFulfillment,
        req: NoteRequest,
        *,
        now: datetime | None = None,
    ) -> None:
        if fulfillment.status != FulfillmentStatus.COMMUNITY_REVIEW.value:
            return
        verdict = engine.community_verdict(fulfillment.upvotes, fulfillment.downvotes)
        if verdict == FulfillmentStatus.APPROVED:
            self._settle(fulfillment, req, now=now)
        elif verdict == FulfillmentStatus.REJECTED:
            engine.transition(fulfillment, FulfillmentStatus.REJECTED, now=now)
            logger.info("Fulfillment %s rejected by community vote", fulfillment.id)

    def _settle(self, fulfillment: RequestFulfillment, req: NoteRequest, *, now: datetime | None = None) -> None:
        """Approve, close the request (first approval wins), pay the uploader, reject the rest."""
        now = now or utcnow()
        engine.transition(fulfillment, FulfillmentStatus.APPROVED, now=now)
        self.db.flush()
        if not request_store.close_as_fulfilled(self.db, req.id, fulfillment.uploader_id, now=now):
            raise AlreadyResolved("Request is no longer open; another fulfillment was settled first.")
        points_ledger.credit(
            self.db, fulfillment.uploader_id, req.points_offered, PointsReason.FULFILLMENT_REWARD, fulfillment.id,
        )
        self._reject_pending(req, REQUEST_ALREADY_FULFILLED, now=now)
        logger.info(
            "Fulfillment %s approved; request %s closed, %s points to %s",
            fulfillment.id, req.id, req.points_offered, fulfillment.uploader_id,
        )

    def _reject_pending(self, req: NoteRequest, reason: str, *, now: datetime | None = None) -> None:
        pending = (
            self.db.query(RequestFulfillment)
            .filter(
                RequestFulfillment.request_id == req.id,
                RequestFulfillment.status.notin_([s.value for s in engine.TERMINAL]),
            )
            .all()
        )
        for other in pending:
            if engine.is_terminal(other):
                continue
            engine.transition(other, FulfillmentStatus.REJECTED, now=now)
            other.validation_errors = [*(other.validation_errors or []), reason]
        self.db.flush()
