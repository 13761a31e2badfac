"""
Transfer agent: delivers written export files to a player app's FTP/FTPS/SFTP server.

Every transfer is a single curl invocation (connectivity test = directory listing,
upload = ``-T`` with ``--ftp-create-dirs``). Uploads run one file at a time and
stop at the first failure; files already sent stay on the server.
"""
import asyncio
import logging
import math
import os
import posixpath
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING
from urllib.parse import quote, unquote, urlsplit

from pydantic import BaseModel

from webradio.config import settings
from webradio.core.exceptions import TransferConfigError, TransferError, TransferToolNotFoundError

if TYPE_CHECKING:
    from webradio.schemas.export import ExportedFile

logger = logging.getLogger(__name__)

SUPPORTED_PROTOCOLS = ("ftp", "ftps", "sftp")
DEFAULT_TIMEOUT_MS = 30000
MIN_TIMEOUT_MS = 1000
MAX_TIMEOUT_MS = 600000
IMPLICIT_FTPS_PORT = 990

_SCHEME_PREFIX = re.compile(r"^[a-z]+://", re.IGNORECASE)
# Sub-delimiters kept literal in path segments, as browsers do
_SEGMENT_SAFE = "!*'()"


def sanitize_timeout(timeout_ms) -> int:
    """Clamp a millisecond timeout to [1s, 10min]; anything unusable becomes 30s."""
    try:
        numeric = float(timeout_ms)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT_MS
    if not math.isfinite(numeric) or numeric <= 0:
        return DEFAULT_TIMEOUT_MS
    return min(max(int(round(numeric)), MIN_TIMEOUT_MS), MAX_TIMEOUT_MS)


def normalize_protocol(protocol, server=None) -> str:
    explicit = protocol.strip().lower() if isinstance(protocol, str) else ""
    if explicit in SUPPORTED_PROTOCOLS:
        return explicit
    if isinstance(server, str):
        lowered = server.strip().lower()
        if lowered.startswith("sftp://"):
            return "sftp"
        if lowered.startswith("ftps://"):
            return "ftps"
    return "ftp"


def _segments(value: str | None) -> list[str]:
    if not value:
        return []
    return [segment.strip() for segment in value.split("/") if segment.strip()]


class RemoteServer(BaseModel):
    model_config = {"frozen": True}

    protocol: str
    host: str
    port: int | None = None
    base_segments: list[str] = []
    implicit_ftps: bool = False


class TransferSettings(BaseModel):
    model_config = {"frozen": True}

    server: RemoteServer
    username: str
    password: str
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @property
    def connect_timeout_seconds(self) -> int:
        return max(1, math.ceil(self.timeout_ms / 1000))


def parse_server(server, protocol=None) -> RemoteServer:
    """Parse a bare host, host/path or full URL into a RemoteServer.

    Raises TransferConfigError for empty or invalid values and for addresses
    carrying embedded credentials.
    """
    trimmed = server.strip() if isinstance(server, str) else ""
    if not trimmed:
        raise TransferConfigError("FTP server is required.")

    has_scheme = bool(_SCHEME_PREFIX.match(trimmed))
    effective = normalize_protocol(protocol, trimmed)
    candidate = trimmed if has_scheme else f"{effective}://{trimmed}"

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise TransferConfigError("FTP server value is not a valid URL.") from exc

    if parts.username or parts.password:
        raise TransferConfigError("Remove embedded credentials from the FTP server value.")

    host = (parts.hostname or "").strip()
    if not host:
        raise TransferConfigError("FTP server host is required.")

    # A bare host takes the inferred scheme, so bare host + ftps means implicit TLS
    written_scheme = parts.scheme.lower()
    resolved = normalize_protocol(protocol or written_scheme, trimmed)
    path = posixpath.normpath(unquote(parts.path) or "/")
    implicit = resolved == "ftps" and (written_scheme == "ftps" or port == IMPLICIT_FTPS_PORT)

    return RemoteServer(
        protocol=resolved,
        host=host,
        port=port,
        base_segments=_segments(path),
        implicit_ftps=implicit,
    )


def normalize_transfer_settings(
    server,
    username,
    password,
    protocol=None,
    timeout_ms=None,
) -> TransferSettings:
    remote = parse_server(server, protocol)
    user = username.strip() if isinstance(username, str) else ""
    secret = password if isinstance(password, str) else ""
    if not user:
        raise TransferConfigError("FTP username is required.")
    if not secret:
        raise TransferConfigError("FTP password is required.")
    return TransferSettings(
        server=remote,
        username=user,
        password=secret,
        timeout_ms=sanitize_timeout(timeout_ms),
    )


def build_remote_url(
    server: RemoteServer,
    extra_segments: Sequence[str] = (),
    file_name: str | None = None,
) -> str:
    # Explicit FTPS starts as plain ftp:// and upgrades via --ssl-reqd
    scheme = "ftp" if server.protocol == "ftps" and not server.implicit_ftps else server.protocol
    host = f"[{server.host}]" if ":" in server.host else server.host
    netloc = f"{host}:{server.port}" if server.port else host

    segments = [*server.base_segments, *extra_segments]
    if file_name:
        segments.append(file_name)
    path = "/" + "/".join(quote(segment, safe=_SEGMENT_SAFE) for segment in segments)
    if not file_name and not path.endswith("/"):
        path += "/"
    return f"{scheme}://{netloc}{path}"


def build_curl_args(config: TransferSettings, target_url: str, upload_file: str | None = None) -> list[str]:
    args = [
        "--silent", "--show-error", "--fail",
        "--connect-timeout", str(config.connect_timeout_seconds),
        "--user", f"{config.username}:{config.password}",
    ]
    if config.server.protocol == "ftps" and not config.server.implicit_ftps:
        args += ["--ftp-ssl", "--ssl-reqd"]
    if upload_file:
        args += ["--ftp-create-dirs", "-T", upload_file, target_url]
    else:
        args += ["--list-only", target_url]
    return args


async def run_curl(args: list[str]) -> None:
    tool = settings.CURL_PATH
    try:
        proc = await asyncio.create_subprocess_exec(
            tool,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise TransferToolNotFoundError(os.path.basename(tool) or "curl") from exc
    except OSError as exc:
        raise TransferError(f"Could not start {os.path.basename(tool) or 'curl'}: {exc}") from exc

    _stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        message = (stderr or b"").decode("utf-8", errors="replace").strip()
        raise TransferError(message or f"curl exited with code {proc.returncode}")


async def verify_connection(config: TransferSettings) -> bool:
    """List the base remote directory. Raises on any failure."""
    target_url = build_remote_url(config.server)
    await run_curl(build_curl_args(config, target_url))
    logger.info("Transfer connectivity verified for %s", config.server.host)
    return True


async def upload_files(
    config: TransferSettings,
    files: Sequence["ExportedFile"],
    remote_subdirectory: str | None = None,
) -> list[str]:
    """Upload files in order and return the names sent.

    The first failure propagates with the names already sent in its
    ``uploaded`` attribute; callers reconcile partial delivery themselves.
    """
    extra = _segments(remote_subdirectory)
    uploaded: list[str] = []
    try:
        for file in files:
            if not os.path.isfile(file.output_path):
                raise TransferError(f"Export file is missing: {file.output_path}")
            target_url = build_remote_url(config.server, extra, file.file_name)
            await run_curl(build_curl_args(config, target_url, upload_file=file.output_path))
            uploaded.append(file.file_name)
            logger.debug("Uploaded %s to %s", file.file_name, config.server.host)
    except TransferError as exc:
        exc.uploaded = list(uploaded)
        raise
    return uploaded
