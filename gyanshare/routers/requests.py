"""
Note requests: create (escrows points), browse open requests, my requests,
cancel (refund), and submit a PDF fulfillment for a request.
"""
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session
from gyanshare.auth import get_current_user
from gyanshare.config import get_settings
from gyanshare.database import get_db
from gyanshare.models.profile import Profile
from gyanshare.schemas.fulfillment import FulfillmentResponse
from gyanshare.schemas.note_request import NoteRequestCreate, NoteRequestResponse
from gyanshare.services import request_store
from gyanshare.services.workflow import RequestWorkflow

router = APIRouter(prefix="/api/requests", tags=["requests"])

CHUNK_SIZE = 1024 * 1024  # 1 MB


def get_workflow(db: Session = Depends(get_db)) -> RequestWorkflow:
    return RequestWorkflow(db)


def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read at most max_bytes + 1 so oversize files are detected without loading them whole."""
    buf = bytearray()
    while chunk := file.file.read(CHUNK_SIZE):
        buf.extend(chunk)
        if len(buf) > max_bytes:
            break
    return bytes(buf)


@router.post("", response_model=NoteRequestResponse, status_code=status.HTTP_201_CREATED)
def create_request(
    body: NoteRequestCreate,
    user: Profile = Depends(get_current_user),
    workflow: RequestWorkflow = Depends(get_workflow),
):
    """Create a request. points_offered is deducted now and paid to whoever fulfills it."""
    req = workflow.create_request(
        user.id,
        body.category.value,
        body.level,
        body.subject,
        body.topic,
        body.description,
        body.points_offered,
    )
    return NoteRequestResponse.model_validate(req)


@router.get("", response_model=list[NoteRequestResponse])
def list_open_requests(
    category: str | None = None,
    subject: str | None = None,
    q: str | None = None,
    db: Session = Depends(get_db),
):
    """Open requests, newest first. ?q= searches subject and topic."""
    rows = request_store.list_open(db, category=category, subject=subject, search_text=q)
    return [NoteRequestResponse.model_validate(r) for r in rows]


@router.get("/mine", response_model=list[NoteRequestResponse])
def list_my_requests(
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [NoteRequestResponse.model_validate(r) for r in request_store.list_for_requester(db, user.id)]


@router.get("/{request_id}", response_model=NoteRequestResponse)
def get_request(request_id: str, db: Session = Depends(get_db)):
    return NoteRequestResponse.model_validate(request_store.get_request(db, request_id))


@router.post("/{request_id}/cancel", response_model=NoteRequestResponse)
def cancel_request(
    request_id: str,
    user: Profile = Depends(get_current_user),
    workflow: RequestWorkflow = Depends(get_workflow),
):
    """Requester cancels an open request; escrowed points are refunded."""
    return NoteRequestResponse.model_validate(workflow.cancel_request(request_id, user.id))


@router.post("/{request_id}/fulfillments", response_model=FulfillmentResponse, status_code=status.HTTP_201_CREATED)
def submit_fulfillment(
    request_id: str,
    file: UploadFile = File(...),
    user: Profile = Depends(get_current_user),
    workflow: RequestWorkflow = Depends(get_workflow),
):
    """Upload a PDF for a request. Invalid files are refused with every violated rule."""
    data = read_upload(file, get_settings().fulfillment_max_bytes)
    fulfillment = workflow.submit_fulfillment(request_id, user.id, file.content_type, data)
    return FulfillmentResponse.model_validate(fulfillment)
