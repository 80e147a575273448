"""
Shared notes: upload (earns Gyan Points, 3/day), browse, vote, paid download,
report, personal library and AI search.
Stored files are served from /files/{key}?token=... (signed, no Bearer needed).
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from gyanshare.auth import get_current_user
from gyanshare.config import get_settings
from gyanshare.database import get_db
from gyanshare.errors import NotAuthorized
from gyanshare.models.note import Note, SavedNote
from gyanshare.models.profile import Profile
from gyanshare.routers.requests import read_upload
from gyanshare.schemas.note import (
    DownloadResponse,
    NoteDetailResponse,
    NoteResponse,
    NoteUploadResponse,
    NoteVoteBody,
    NoteVoteResponse,
    ReportBody,
    SavedNoteResponse,
    SearchRequest,
    SearchResponse,
)
from gyanshare.services import ai_search, notes, storage

router = APIRouter(tags=["notes"])


def note_response(note: Note) -> NoteResponse:
    return NoteResponse.model_validate(note).model_copy(update={"download_cost": notes.download_cost(note)})


@router.post("/api/notes", response_model=NoteUploadResponse, status_code=status.HTTP_201_CREATED)
def upload_note(
    category: str = Form(...),
    level: str = Form(...),
    subject: str = Form(...),
    topic: str = Form(...),
    tags: str = Form(""),
    file: UploadFile = File(...),
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    settings = get_settings()
    data = read_upload(file, settings.note_max_bytes)
    # commits itself; the stored file is removed if the commit fails
    note = notes.upload_note(
        db, user.id, category, level, subject, topic, tags, file.filename, file.content_type, data,
    )
    db.refresh(note)
    return NoteUploadResponse(
        message=f"Note uploaded successfully! You earned {settings.upload_bonus_points} Gyan Points!",
        note=note_response(note),
        file_url=note.file_url,
        points_awarded=settings.upload_bonus_points,
    )


@router.get("/api/notes", response_model=list[NoteResponse])
def list_notes(
    category: str | None = None,
    level: str | None = None,
    q: str | None = None,
    db: Session = Depends(get_db),
):
    return [note_response(n) for n in notes.list_notes(db, category, level, q)]


@router.get("/api/notes/{note_id}", response_model=NoteDetailResponse)
def get_note(note_id: str, user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    note = notes.get_note(db, note_id)
    is_saved = db.query(SavedNote.id).filter(SavedNote.user_id == user.id, SavedNote.note_id == note.id).first()
    return NoteDetailResponse(
        note=note_response(note),
        user_vote=notes.get_user_vote(db, note.id, user.id),
        is_saved=is_saved is not None,
    )


@router.post("/api/notes/{note_id}/vote", response_model=NoteVoteResponse)
def vote_note(
    note_id: str,
    body: NoteVoteBody,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Same vote again removes it; the other vote type replaces it."""
    note = notes.get_note(db, note_id)
    current = notes.vote_note(db, note, user.id, body.vote_type)
    db.commit()
    db.refresh(note)
    return NoteVoteResponse(
        message="Vote removed" if current is None else "Vote recorded",
        user_vote=current,
        upvotes=note.upvotes,
        downvotes=note.downvotes,
        trust_score=note.trust_score,
    )


@router.post("/api/notes/{note_id}/download", response_model=DownloadResponse)
def download_note(note_id: str, user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    """Spend Gyan Points for a fresh file link. 402 with the shortfall if the balance is too low."""
    note = notes.get_note(db, note_id)
    url, spent = notes.purchase_download(db, note, user.id)
    db.commit()
    return DownloadResponse(file_url=url, points_spent=spent)


@router.post("/api/notes/{note_id}/report", status_code=status.HTTP_201_CREATED)
def report_note(
    note_id: str,
    body: ReportBody,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = notes.get_note(db, note_id)
    notes.report_note(db, note, user.id, body.reason)
    db.commit()
    return {"message": "Report submitted. Thank you for helping keep GyanShare clean."}


@router.post("/api/notes/{note_id}/save", status_code=status.HTTP_201_CREATED)
def save_note(note_id: str, user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    note = notes.get_note(db, note_id)
    notes.save_note(db, note, user.id)
    db.commit()
    return {"message": "Saved to your library"}


@router.delete("/api/notes/{note_id}/save")
def unsave_note(note_id: str, user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    removed = notes.unsave_note(db, note_id, user.id)
    db.commit()
    return {"message": "Removed from your library" if removed else "Note was not in your library"}


@router.get("/api/library", response_model=list[SavedNoteResponse])
def get_library(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    return [
        SavedNoteResponse(saved_at=saved.created_at, note=note_response(note))
        for saved, note in notes.list_saved(db, user.id)
    ]


@router.post("/api/search", response_model=SearchResponse)
def search(
    body: SearchRequest,
    _user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """AI-ranked search (max 10). Falls back to subject/topic matching if the model fails."""
    rows = ai_search.search_notes(db, body.query, body.category, body.level)
    return SearchResponse(notes=[note_response(n) for n in rows])


@router.get("/files/{key:path}")
def get_file(key: str, token: str = Query(...)):
    """Serve a stored file. The signed token must be for exactly this key."""
    if storage.decode_file_token(token) != key:
        raise NotAuthorized("Invalid or expired file link")
    return FileResponse(storage.open_path(key))
