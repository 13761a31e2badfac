from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from webradio.db.base import Base, StringPrimaryKeyMixin, TimestampMixin


class Genre(StringPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "genres"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sub_genres: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
