"""
============================================================================
Uploads - Détection et archivage des dumps SQL reçus
============================================================================
"""

import shutil
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SqlUpload:
    """Dump SQL déposé dans le répertoire d'upload"""

    path: Path
    file_name: str
    size_bytes: int
    modified_at: datetime
    modified_ns: int

    @property
    def run_key(self) -> str:
        """Clé stable : un run par fichier et par version"""
        return f"{self.file_name}:{self.modified_ns}"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["path"] = str(self.path)
        data["modified_at"] = self.modified_at.isoformat()
        return data


def scan_sql_uploads(upload_dir: Path) -> list[SqlUpload]:
    """
    Lister les fichiers *.sql du répertoire d'upload

    Returns:
        Uploads triés du plus ancien au plus récent
    """
    if not upload_dir.exists():
        logger.error("Upload directory not found", path=str(upload_dir))
        return []

    uploads = []
    for path in upload_dir.glob("*.sql"):
        if not path.is_file():
            continue
        stat = path.stat()
        uploads.append(
            SqlUpload(
                path=path,
                file_name=path.name,
                size_bytes=stat.st_size,
                modified_at=datetime.fromtimestamp(stat.st_mtime),
                modified_ns=stat.st_mtime_ns,
            )
        )

    uploads.sort(key=lambda upload: upload.modified_ns)
    logger.info("SQL uploads scanned", count=len(uploads), path=str(upload_dir))
    return uploads


def archive_upload(path: Path, archive_root: Path) -> Optional[Path]:
    """
    Déplacer un dump traité vers archive_root/YYYY-MM-DD/

    Returns:
        Chemin archivé, None si le fichier n'existe plus
    """
    if not path.exists():
        logger.debug("Upload already gone, nothing to archive", file=path.name)
        return None

    date_str = datetime.now().strftime("%Y-%m-%d")
    archive_dir = archive_root / date_str
    archive_dir.mkdir(parents=True, exist_ok=True)

    dest_path = archive_dir / path.name
    if dest_path.exists():
        dest_path = archive_dir / f"{path.stem}_{datetime.now():%H%M%S}{path.suffix}"

    shutil.move(str(path), str(dest_path))
    logger.info("SQL upload archived", file=path.name, archive=str(dest_path))
    return dest_path
