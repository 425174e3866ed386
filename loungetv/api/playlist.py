from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from loungetv.api.display import get_display
from loungetv.db import SessionLocal
from loungetv.models.playlist import Playlist, PlaylistScreen
from loungetv.models.screen import Screen
from loungetv.schemas.playlist import PlaylistScreenOut
from loungetv.schemas.screen import ScreenOut
from loungetv.services.display import DisplaySession
from loungetv.services.schedule_window import screen_eligible

router = APIRouter(prefix="/playlists", tags=["playlists"])


class PlaylistSummaryOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    scheduling_enabled: bool
    is_active: bool
    is_default: bool
    sort_order: int
    color: str | None = None
    screen_count: int


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _summary(playlist: Playlist, screen_count: int) -> PlaylistSummaryOut:
    return PlaylistSummaryOut(
        id=playlist.id,
        name=playlist.name,
        description=playlist.description,
        scheduling_enabled=bool(playlist.scheduling_enabled),
        is_active=bool(playlist.is_active),
        is_default=bool(playlist.is_default),
        sort_order=playlist.sort_order or 0,
        color=playlist.color,
        screen_count=screen_count,
    )


def _get_playlist(db: Session, playlist_id: int) -> Playlist:
    playlist = db.get(Playlist, playlist_id)
    if not playlist:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return playlist


@router.get("", response_model=list[PlaylistSummaryOut])
def list_playlists(db: Session = Depends(get_db)):
    playlists = db.query(Playlist).order_by(Playlist.sort_order.asc(), Playlist.id.asc()).all()
    counts: dict[int, int] = {}
    for (playlist_id,) in db.query(PlaylistScreen.playlist_id).all():
        counts[playlist_id] = counts.get(playlist_id, 0) + 1
    return [_summary(item, counts.get(item.id, 0)) for item in playlists]


@router.get("/{playlist_id}/screens", response_model=list[PlaylistScreenOut])
def list_playlist_screens(
    playlist_id: int,
    db: Session = Depends(get_db),
    display: DisplaySession = Depends(get_display),
):
    _get_playlist(db, playlist_id)
    rows = (
        db.query(Screen)
        .join(PlaylistScreen, PlaylistScreen.screen_id == Screen.id)
        .filter(PlaylistScreen.playlist_id == playlist_id)
        # Higher priority first among screens sharing a position.
        .order_by(PlaylistScreen.sort_order.asc(), Screen.priority.desc(), Screen.id.asc())
        .all()
    )
    now = display.clock.now()
    result: list[PlaylistScreenOut] = []
    for row in rows:
        try:
            screen = ScreenOut.model_validate(row)
        except ValidationError as exc:
            raise HTTPException(status_code=500, detail=f"Screen {row.id} is unreadable") from exc
        result.append(
            PlaylistScreenOut(
                id=screen.id,
                type=screen.type.value,
                title=screen.title,
                is_active=screen.is_active,
                priority=screen.priority,
                eligible_now=screen_eligible(screen, now),
            )
        )
    return result


@router.post("/{playlist_id}/activate", response_model=PlaylistSummaryOut)
def activate_playlist(playlist_id: int, db: Session = Depends(get_db)):
    playlist = _get_playlist(db, playlist_id)
    # At most one manual override at a time.
    db.query(Playlist).filter(Playlist.id != playlist_id).update({"is_active": False}, synchronize_session=False)
    playlist.is_active = True
    db.commit()
    db.refresh(playlist)
    screen_count = db.query(PlaylistScreen).filter(PlaylistScreen.playlist_id == playlist_id).count()
    return _summary(playlist, screen_count)


@router.delete("/active")
def clear_active_playlist(db: Session = Depends(get_db)):
    cleared = (
        db.query(Playlist)
        .filter(Playlist.is_active.is_(True))
        .update({"is_active": False}, synchronize_session=False)
    )
    db.commit()
    return {"ok": True, "cleared": cleared}
