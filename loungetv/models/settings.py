from datetime import datetime
from sqlalchemy import Column, DateTime, Integer, String
from loungetv.db import Base


class AppSettings(Base):
    __tablename__ = "app_settings"
    id = Column(Integer, primary_key=True, autoincrement=True)
    location_name = Column(String(255), nullable=False, default="Catfé")
    default_duration_seconds = Column(Integer, nullable=False, default=10)
    snap_and_purr_frequency = Column(Integer, nullable=False, default=5)
    refresh_interval_seconds = Column(Integer, nullable=False, default=60)
    fallback_mode = Column(String(16), nullable=False, default="LOOP_DEFAULT")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
