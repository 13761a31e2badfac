"""Catalog records as the export pipeline sees them.

These are read-only views built either from the database tables or from a
JSON catalog file. Validators apply the same coercions the editors' forms do,
so a record that made it into a snapshot is always well-formed.
"""
import uuid
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from webradio.core.text import unique_strings
from webradio.models.station import AdType
from webradio.services.transfer_service import normalize_protocol, sanitize_timeout

_RECORD_CONFIG = {"from_attributes": True, "frozen": True}


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


class Genre(BaseModel):
    model_config = _RECORD_CONFIG

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    sub_genres: list[str] = []

    @field_validator("id", "name", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _clean(v)

    @field_validator("sub_genres", mode="before")
    @classmethod
    def _unique_sub_genres(cls, v: Any) -> list[str]:
        return unique_strings(v)


class Station(BaseModel):
    model_config = _RECORD_CONFIG

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    stream_url: str = ""
    description: str = ""
    genre_id: str = ""
    sub_genres: list[str] = []
    logo_url: str = ""
    bitrate: int = 128
    language: str = "en"
    region: str = "Global"
    tags: list[str] = []
    ad_type: AdType = AdType.NO
    is_active: bool = True
    is_favorite: bool = False

    @field_validator("id", "name", "stream_url", "description", "genre_id", "logo_url", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _clean(v)

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, v: Any) -> str:
        return _clean(v) or "en"

    @field_validator("region", mode="before")
    @classmethod
    def _default_region(cls, v: Any) -> str:
        return _clean(v) or "Global"

    @field_validator("bitrate", mode="before")
    @classmethod
    def _coerce_bitrate(cls, v: Any) -> int:
        try:
            return int(float(v))
        except (TypeError, ValueError, OverflowError):
            return 128

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, v: Any) -> list[str]:
        if not isinstance(v, (list, tuple)):
            return []
        return [tag for tag in (_clean(t) for t in v) if tag]

    @field_validator("sub_genres", mode="before")
    @classmethod
    def _list_only(cls, v: Any) -> list[str]:
        if not isinstance(v, (list, tuple)):
            return []
        return [_clean(s) for s in v if isinstance(s, str) and s.strip()]

    @field_validator("ad_type", mode="before")
    @classmethod
    def _coerce_ad_type(cls, v: Any) -> AdType:
        if isinstance(v, AdType):
            return v
        try:
            return AdType(_clean(v).lower())
        except ValueError:
            return AdType.NO


class Placements(BaseModel):
    model_config = _RECORD_CONFIG

    preroll: str = ""
    midroll: str = ""
    rewarded: str = ""

    @field_validator("preroll", "midroll", "rewarded", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _clean(v)


class PlayerApp(BaseModel):
    model_config = _RECORD_CONFIG

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    platforms: list[str] = ["web"]
    description: str = ""
    contact_email: str = ""
    notes: str = ""
    ftp_enabled: bool = False
    ftp_server: str = ""
    ftp_username: str = ""
    ftp_password: str = ""
    ftp_protocol: str = "ftp"
    ftp_timeout: int = 30000
    ads_enabled: bool = True
    network_code: str = ""
    placements: Placements = Placements()
    video_preroll_default_size: str = "640x480"

    @model_validator(mode="before")
    @classmethod
    def _merge_platforms(cls, data: Any) -> Any:
        """Fold a legacy single ``platform`` value into ``platforms`` and normalize transfer fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        raw = data.get("platforms")
        platforms = [str(p).strip() for p in raw if p is not None] if isinstance(raw, (list, tuple)) else []
        declared = data.pop("platform", None)
        if isinstance(declared, str) and declared.strip():
            platforms.insert(0, declared.strip())
        data["platforms"] = unique_strings(platforms) or ["web"]
        server = _clean(data.get("ftp_server"))
        data["ftp_protocol"] = normalize_protocol(data.get("ftp_protocol"), server)
        data["ftp_timeout"] = sanitize_timeout(data.get("ftp_timeout"))
        return data

    @field_validator("id", "name", "description", "contact_email", "notes",
                     "ftp_server", "ftp_username", "network_code", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _clean(v)

    @field_validator("ftp_password", mode="before")
    @classmethod
    def _password(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) else ""

    @field_validator("placements", mode="before")
    @classmethod
    def _placements(cls, v: Any) -> Any:
        return v if v else {}

    @field_validator("video_preroll_default_size", mode="before")
    @classmethod
    def _video_size(cls, v: Any) -> str:
        return _clean(v) or "640x480"

    @property
    def primary_platform(self) -> str:
        return self.platforms[0]


class AutoExport(BaseModel):
    """Scheduling metadata; stored with the profile, consumed by the worker schedule."""

    model_config = _RECORD_CONFIG

    enabled: bool = False
    interval: str = "daily"
    time: str = "09:00"

    @field_validator("interval", mode="before")
    @classmethod
    def _interval(cls, v: Any) -> str:
        value = _clean(v).lower()
        return value if value in ("daily", "weekly", "monthly") else "daily"

    @field_validator("time", mode="before")
    @classmethod
    def _time(cls, v: Any) -> str:
        return _clean(v) or "09:00"


class ExportProfile(BaseModel):
    model_config = _RECORD_CONFIG

    id: str = Field(default_factory=lambda: f"ep-{uuid.uuid4()}")
    name: str = ""
    genre_ids: list[str] = []
    station_ids: list[str] = []
    sub_genres: list[str] = []
    player_id: str | None = None
    auto_export: AutoExport = AutoExport()

    @field_validator("id", "name", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _clean(v)

    @field_validator("genre_ids", "station_ids", "sub_genres", mode="before")
    @classmethod
    def _unique(cls, v: Any) -> list[str]:
        return unique_strings(v)

    @field_validator("player_id", mode="before")
    @classmethod
    def _player(cls, v: Any) -> str | None:
        return _clean(v) or None

    @field_validator("auto_export", mode="before")
    @classmethod
    def _auto_export(cls, v: Any) -> Any:
        return v if v else {}
