"""
ZIP packaging for profile downloads.

Archives are assembled by hand so the output is byte-for-byte reproducible:
the same entries (names, contents, modification times) always produce the
same bytes. Every entry is raw-deflated; no extra fields, comments or
data descriptors are written.
"""
import glob
import logging
import os
import struct
import zlib
from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel

logger = logging.getLogger(__name__)

LOCAL_HEADER_SIGNATURE = 0x04034B50
CENTRAL_HEADER_SIGNATURE = 0x02014B50
END_OF_CENTRAL_DIR_SIGNATURE = 0x06054B50
ZIP_VERSION = 20
METHOD_DEFLATE = 8

# signature, version needed, flags, method, time, date, crc, csize, usize, name len, extra len
_LOCAL_HEADER = struct.Struct("<IHHHHHIIIHH")
# signature, made by, needed, flags, method, time, date, crc, csize, usize,
# name len, extra len, comment len, disk, internal attrs, external attrs, local offset
_CENTRAL_HEADER = struct.Struct("<IHHHHHHIIIHHHHHII")
# signature, disk, cd disk, entries on disk, entries, cd size, cd offset, comment len
_END_RECORD = struct.Struct("<IHHHHIIH")


class ArchiveEntry(BaseModel):
    file_name: str
    contents: bytes
    modified_time: datetime


class PackedEntry(BaseModel):
    local_record: bytes
    central_record: bytes


def to_dos_datetime(moment: datetime) -> tuple[int, int]:
    """Local wall-clock time as (dos_time, dos_date)."""
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    year = min(max(moment.year, 1980), 2107)
    dos_time = (moment.hour << 11) | (moment.minute << 5) | (moment.second // 2)
    dos_date = ((year - 1980) << 9) | (moment.month << 5) | moment.day
    return dos_time, dos_date


def deflate_raw(data: bytes) -> bytes:
    compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -15)
    return compressor.compress(data) + compressor.flush()


def pack_entry(offset: int, entry: ArchiveEntry) -> tuple[int, PackedEntry]:
    """Pack one entry whose local header starts at ``offset``; return the next free offset."""
    name = entry.file_name.replace("\\", "/").encode("utf-8")
    compressed = deflate_raw(entry.contents)
    checksum = zlib.crc32(entry.contents) & 0xFFFFFFFF
    dos_time, dos_date = to_dos_datetime(entry.modified_time)

    local = _LOCAL_HEADER.pack(
        LOCAL_HEADER_SIGNATURE, ZIP_VERSION, 0, METHOD_DEFLATE, dos_time, dos_date,
        checksum, len(compressed), len(entry.contents), len(name), 0,
    ) + name + compressed

    central = _CENTRAL_HEADER.pack(
        CENTRAL_HEADER_SIGNATURE, ZIP_VERSION, ZIP_VERSION, 0, METHOD_DEFLATE, dos_time, dos_date,
        checksum, len(compressed), len(entry.contents), len(name), 0, 0, 0, 0, 0, offset,
    ) + name

    return offset + len(local), PackedEntry(local_record=local, central_record=central)


def create_zip_archive(entries: Sequence[ArchiveEntry]) -> bytes:
    offset = 0
    packed: list[PackedEntry] = []
    for entry in entries:
        offset, record = pack_entry(offset, entry)
        packed.append(record)

    local_section = b"".join(record.local_record for record in packed)
    central_directory = b"".join(record.central_record for record in packed)
    end_record = _END_RECORD.pack(
        END_OF_CENTRAL_DIR_SIGNATURE, 0, 0, len(packed), len(packed),
        len(central_directory), len(local_section), 0,
    )
    return local_section + central_directory + end_record


def collect_profile_files(output_dir: str, slug: str, platforms: Sequence[str]) -> list[ArchiveEntry]:
    """Every ``{slug}-{platform}.json`` export file in ``output_dir``, sorted by name.

    Only the listed platform keys match, so a profile named "Jazz" never picks
    up files written for "Jazz Classics".
    """
    wanted = {f"{slug}-{platform}.json" for platform in platforms}
    entries: list[ArchiveEntry] = []
    pattern = os.path.join(glob.escape(output_dir), f"{glob.escape(slug)}-*")
    for path in sorted(glob.glob(pattern)):
        if os.path.basename(path) not in wanted or not os.path.isfile(path):
            continue
        try:
            with open(path, "rb") as fh:
                contents = fh.read()
            modified = datetime.fromtimestamp(os.path.getmtime(path))
        except OSError as exc:
            logger.warning("Skipping unreadable export file %s: %s", path, exc)
            continue
        entries.append(ArchiveEntry(file_name=os.path.basename(path), contents=contents, modified_time=modified))
    return entries
