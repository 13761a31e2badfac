from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from webradio.db.base import Base, StringPrimaryKeyMixin, TimestampMixin


class PlayerApp(StringPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "player_apps"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    platforms: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Transfer credentials
    ftp_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ftp_server: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    ftp_username: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    ftp_password: Mapped[str] = mapped_column(Text, default="", nullable=False)
    ftp_protocol: Mapped[str] = mapped_column(String(10), default="ftp", nullable=False)
    ftp_timeout: Mapped[int] = mapped_column(Integer, default=30000, nullable=False)

    # Ads
    ads_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    network_code: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    placements: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    video_preroll_default_size: Mapped[str] = mapped_column(String(20), default="640x480", nullable=False)
