import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..models.network_models import BackupInfo
from .errors import BackupNotFound

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "netplan-backup-"
BACKUP_SUFFIX = ".yaml"
LATEST_POINTER = "latest-backup.txt"
NO_BACKUP = "none"
LATEST = "latest"


def atomic_write(target: Path, data: bytes, mode: int = 0o600) -> None:
    """Replace ``target`` with ``data`` via a temp file and ``os.replace``."""
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp, mode)
        os.replace(tmp, target)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class BackupStore:
    """Timestamped verbatim copies of the netplan document."""

    def __init__(self, backup_dir: Path):
        self.backup_dir = Path(backup_dir)

    @property
    def pointer(self) -> Path:
        return self.backup_dir / LATEST_POINTER

    def path_for(self, backup_id: str) -> Path:
        return self.backup_dir / f"{BACKUP_PREFIX}{backup_id}{BACKUP_SUFFIX}"

    @staticmethod
    def id_of(path: Path) -> str:
        return Path(path).name[len(BACKUP_PREFIX):-len(BACKUP_SUFFIX)]

    def _new_id(self) -> str:
        backup_id = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        while self.path_for(backup_id).exists():
            backup_id = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        return backup_id

    def create(self, source: Path) -> Optional[str]:
        """Back up ``source``; returns the new id, or None when it does not exist."""
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        source = Path(source)

        if not source.exists():
            logger.info("No existing configuration to backup")
            self.pointer.write_text(NO_BACKUP + "\n")
            return None

        backup_id = self._new_id()
        backup_file = self.path_for(backup_id)
        shutil.copy2(source, backup_file)
        os.chmod(backup_file, 0o400)
        self.pointer.write_text(backup_id + "\n")
        logger.info("Configuration backed up to: %s", backup_file)
        return backup_id

    def latest_id(self) -> Optional[str]:
        """Id recorded by the last backup; None if it recorded no document."""
        if not self.pointer.exists():
            return None
        value = self.pointer.read_text().strip()
        if not value or value == NO_BACKUP:
            return None
        return value

    def ids(self) -> List[str]:
        """Backup ids, newest first."""
        if not self.backup_dir.is_dir():
            return []
        ids = [self.id_of(p) for p in self.backup_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}")]
        return sorted(ids, reverse=True)

    def list(self) -> List[BackupInfo]:
        ids = self.ids()
        return [
            BackupInfo(
                backup_id=backup_id,
                path=str(self.path_for(backup_id)),
                size=self.path_for(backup_id).stat().st_size,
                is_latest=index == 0,
            )
            for index, backup_id in enumerate(ids)
        ]

    def resolve(self, backup_id: Optional[str] = None) -> Path:
        """Path of ``backup_id``; ``latest`` (or nothing) means the newest backup."""
        if not backup_id or backup_id == LATEST:
            ids = self.ids()
            if not ids:
                raise BackupNotFound("No backups found")
            backup_id = ids[0]
        path = self.path_for(backup_id)
        if not path.is_file():
            raise BackupNotFound(f"Backup {backup_id} does not exist")
        return path

    def restore_to(self, backup_id: Optional[str], target: Path) -> str:
        """Copy a backup over ``target``; returns the id that was restored."""
        path = self.resolve(backup_id)
        atomic_write(Path(target), path.read_bytes())
        restored = self.id_of(path)
        logger.info("Backup %s restored to %s", restored, target)
        return restored
