import logging

from fastapi import APIRouter

from webradio.core.exceptions import BadRequestError, TransferError
from webradio.schemas.export import TransferTestRequest, TransferTestResponse
from webradio.services.transfer_service import normalize_transfer_settings, verify_connection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/player-apps", tags=["player-apps"])


@router.post("/test-ftp", response_model=TransferTestResponse)
async def test_ftp(body: TransferTestRequest):
    """Check that the given upload credentials can list the remote directory."""
    server = (body.ftp_server or "").strip()
    username = (body.ftp_username or "").strip()
    password = body.ftp_password or ""
    if not server or not username or not password:
        raise BadRequestError("FTP server, username, and password are required.")

    try:
        config = normalize_transfer_settings(
            server, username, password,
            protocol=body.ftp_protocol,
            timeout_ms=body.ftp_timeout,
        )
        await verify_connection(config)
    except TransferError as e:
        logger.warning("FTP credential check failed for %s: %s", server, e)
        raise BadRequestError(str(e) or "Failed to verify FTP credentials.") from e

    logger.info("FTP credentials verified for %s", server)
    return TransferTestResponse(success=True)
