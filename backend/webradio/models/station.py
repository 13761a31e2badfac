import enum

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.dialects.postgresql import ENUM, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from webradio.db.base import Base, StringPrimaryKeyMixin, TimestampMixin


class AdType(str, enum.Enum):
    AUDIO = "audio"
    VIDEO = "video"
    NO = "no"


class Station(StringPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "stations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    stream_url: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    # Plain string instead of a foreign key: deleting a genre blanks it, it never cascades
    genre_id: Mapped[str] = mapped_column(String(255), default="", nullable=False, index=True)
    sub_genres: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    logo_url: Mapped[str] = mapped_column(Text, default="", nullable=False)
    bitrate: Mapped[int] = mapped_column(Integer, default=128, nullable=False)
    language: Mapped[str] = mapped_column(String(50), default="en", nullable=False)
    region: Mapped[str] = mapped_column(String(100), default="Global", nullable=False)
    tags: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    ad_type: Mapped[AdType] = mapped_column(
        ENUM(AdType, name="station_ad_type", create_type=True,
             values_callable=lambda e: [m.value for m in e]),
        default=AdType.NO,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
