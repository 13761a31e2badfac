from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from webradio.db.base import Base, StringPrimaryKeyMixin, TimestampMixin


class ExportProfile(StringPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "export_profiles"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    genre_ids: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    station_ids: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    sub_genres: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    player_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    auto_export: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
