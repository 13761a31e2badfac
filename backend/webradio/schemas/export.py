from typing import Any

from pydantic import BaseModel, Field

from webradio.schemas.catalog import ExportProfile, PlayerApp


class ExportedFile(BaseModel):
    platform: str
    file_name: str
    output_path: str
    uploaded: bool = False


class ExportContext(BaseModel):
    """Result of the initial build: selected stations plus the resolved player app.

    ``payload`` is the document built for the primary platform; per-platform
    documents are rebuilt from it.
    """

    profile: ExportProfile
    stations: list[dict[str, Any]] = []
    player: PlayerApp | None = None
    platform: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def station_count(self) -> int:
        return len(self.stations)


class ExportedFileSummary(BaseModel):
    platform: str
    file_name: str
    output_path: str
    station_count: int
    ftp_uploaded: bool


class ExportSummary(BaseModel):
    profile_id: str
    profile_name: str
    station_count: int
    output_directory: str
    files: list[ExportedFileSummary]


class TransferTestRequest(BaseModel):
    ftp_server: str | None = None
    ftp_username: str | None = None
    ftp_password: str | None = None
    ftp_protocol: str | None = None
    ftp_timeout: int | float | str | None = None


class TransferTestResponse(BaseModel):
    success: bool = True
