from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from loungetv.db import Base


class Playlist(Base):
    __tablename__ = "playlist"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    scheduling_enabled = Column(Boolean, nullable=False, default=False)
    start_at = Column(DateTime, nullable=True)
    end_at = Column(DateTime, nullable=True)
    days_of_week = Column(String(32), nullable=True)
    time_slots = Column(Text, nullable=True)  # JSON array of {"timeStart", "timeEnd"}
    time_start = Column(String(8), nullable=True)
    time_end = Column(String(8), nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    is_default = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    color = Column(String(16), default="#C2884E")
    created_at = Column(DateTime, default=datetime.utcnow)


class PlaylistScreen(Base):
    __tablename__ = "playlist_screen"
    id = Column(Integer, primary_key=True, autoincrement=True)
    playlist_id = Column(Integer, ForeignKey("playlist.id"), nullable=False)
    screen_id = Column(Integer, ForeignKey("screen.id"), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
