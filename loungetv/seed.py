import json
import logging

from sqlalchemy.orm import Session
from loungetv.db import SessionLocal, Base, engine, ensure_sqlite_schema
from loungetv.models.playlist import Playlist, PlaylistScreen
from loungetv.models.screen import Screen
from loungetv.models.settings import AppSettings

logger = logging.getLogger(__name__)


def seed() -> None:
    Base.metadata.create_all(bind=engine)
    ensure_sqlite_schema()
    db: Session = SessionLocal()
    try:
        if db.query(Screen).count():
            logger.info("Catalog already has screens, skipping seed")
            return

        if db.query(AppSettings).first() is None:
            db.add(AppSettings())

        screens = [
            Screen(type="SNAP_AND_PURR", title="Snap & Purr", subtitle="Tag us in your cat photos!", is_protected=True),
            Screen(type="ADOPTION", title="Meet Biscuit", subtitle="2 years, loves laps", duration_seconds=15),
            Screen(type="ADOPTION", title="Meet Pepper", subtitle="Shy at first, then your best friend", duration_seconds=15),
            Screen(type="MEMBERSHIP", title="Become a Lounge Member", qr_url="https://example.com/membership"),
            Screen(type="REMINDER", title="Please wash your hands", subtitle="Before and after visiting the cats"),
            Screen(
                type="EVENT",
                title="Kitten Yoga",
                subtitle="Saturdays 10am",
                scheduling_enabled=True,
                days_of_week="6",
                time_start="08:00",
                time_end="11:00",
            ),
            Screen(
                type="TODAY_AT_CATFE",
                title="Happy Hour",
                body="Half-price lattes while the cats nap",
                scheduling_enabled=True,
                time_start="15:00",
                time_end="17:00",
            ),
            Screen(type="THANK_YOU", title="Thank you for visiting!", duration_seconds=8),
        ]
        db.add_all(screens)
        db.commit()
        for screen in screens:
            db.refresh(screen)

        everyday = Playlist(name="Everyday", description="Default lounge loop", is_default=True, sort_order=0)
        weekend = Playlist(
            name="Weekend Mornings",
            scheduling_enabled=True,
            days_of_week="0,6",
            time_slots=json.dumps([{"timeStart": "08:00", "timeEnd": "12:00"}]),
            sort_order=1,
            color="#6A9F58",
        )
        closing = Playlist(
            name="Closing Time",
            scheduling_enabled=True,
            time_slots=json.dumps([{"timeStart": "20:30", "timeEnd": "21:00"}]),
            sort_order=2,
            color="#8E5BA8",
        )
        db.add_all([everyday, weekend, closing])
        db.commit()
        for playlist in (everyday, weekend, closing):
            db.refresh(playlist)

        by_title = {screen.title: screen for screen in screens}
        members = {
            everyday.id: ["Snap & Purr", "Meet Biscuit", "Meet Pepper", "Become a Lounge Member", "Please wash your hands", "Happy Hour"],
            weekend.id: ["Snap & Purr", "Kitten Yoga", "Meet Biscuit", "Meet Pepper"],
            closing.id: ["Thank you for visiting!", "Become a Lounge Member"],
        }
        for playlist_id, titles in members.items():
            for order, title in enumerate(titles):
                db.add(PlaylistScreen(playlist_id=playlist_id, screen_id=by_title[title].id, sort_order=order))
        db.commit()
        logger.info(f"Seeded {len(screens)} screens and {len(members)} playlists")
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed()
