from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from loungetv.db import Base


class Screen(Base):
    __tablename__ = "screen"
    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(32), nullable=False, default="EVENT")
    title = Column(String(255), nullable=False)
    subtitle = Column(String(255), nullable=True)
    body = Column(Text, nullable=True)
    image_path = Column(String(1024), nullable=True)
    qr_url = Column(String(1024), nullable=True)
    hide_overlay = Column(Boolean, nullable=False, default=False)
    duration_seconds = Column(Integer, nullable=True)
    priority = Column(Integer, nullable=False, default=1)
    sort_order = Column(Integer, nullable=False, default=0)
    scheduling_enabled = Column(Boolean, nullable=False, default=False)
    start_at = Column(DateTime, nullable=True)
    end_at = Column(DateTime, nullable=True)
    days_of_week = Column(String(32), nullable=True)  # "0,1,2" with 0=Sunday
    time_start = Column(String(8), nullable=True)
    time_end = Column(String(8), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_protected = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
