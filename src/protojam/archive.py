import io
import logging
import zipfile
import zlib
from pathlib import PurePosixPath

from protojam import config, models

logger = logging.getLogger(__name__)


class IngestError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _is_symlink(info: zipfile.ZipInfo) -> bool:
    # Unix mode lives in the high 16 bits of external_attr
    unix_mode = (info.external_attr >> 16) & 0xFFFF
    return (unix_mode & 0o170000) == 0o120000


def _check_entry_path(name: str) -> None:
    if name.startswith("/") or ".." in PurePosixPath(name).parts:
        raise IngestError(f"Archive entry escapes the archive root: {name}")


def read_archive(filename: str, data: bytes) -> list[models.PrototypeFile]:
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
        raise IngestError(f"Failed to process zip file '{filename}': {exc}") from exc

    files: list[models.PrototypeFile] = []
    with zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            if _is_symlink(info):
                logger.debug(f"Skipping symlink {info.filename} in {filename}")
                continue
            _check_entry_path(info.filename)
            try:
                content = zf.read(info)
            except (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError) as exc:
                raise IngestError(f"Failed to read '{info.filename}' from '{filename}': {exc}") from exc
            files.append(models.PrototypeFile(path=info.filename, content=_decode(content)))

    logger.info(f"Extracted {len(files)} files from {filename}")
    return files


def ingest_file(filename: str, data: bytes) -> list[models.PrototypeFile]:
    if filename.lower().endswith(config.ARCHIVE_EXTENSION):
        return read_archive(filename, data)
    return [models.PrototypeFile(path=filename, content=_decode(data))]


def ingest_files(uploads: list[tuple[str, bytes]]) -> list[models.PrototypeFile]:
    files: list[models.PrototypeFile] = []
    for filename, data in uploads:
        files.extend(ingest_file(filename, data))
    return files
