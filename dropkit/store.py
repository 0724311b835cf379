"""
Durable per-collection project files.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

import portalocker
from pydantic import ValidationError

from .config import get_collection_dir
from .exceptions import ConfigValidationError, ProjectNotFoundError, StoreIOError
from .models import CollectionConfig, DeploymentRecord

logger = logging.getLogger(__name__)

PROJECT_FILE = "project.json"
LOCK_TIMEOUT = 10


def format_validation_error(error: ValidationError) -> List[str]:
    """One line per pydantic error, prefixed with the dotted field location"""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        messages.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return messages


class ProjectStore:
    """
    Project file of one collection, keyed by its symbol.

    Layout: ``<collection dir>/projects/<symbol lower-case>/project.json``.
    Writes hold an advisory lock and replace the file atomically, so readers
    never see a half-written project.
    """

    def __init__(self, symbol: str, root: Optional[Union[str, Path]] = None):
        if not symbol:
            raise ValueError("symbol must be provided")
        self.symbol = symbol
        self.root = Path(root) if root else get_collection_dir()
        self.project_dir = self.root / "projects" / symbol.lower()
        self.path = self.project_dir / PROJECT_FILE

    def _get_lock_path(self) -> str:
        return str(self.path) + ".lock"

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> CollectionConfig:
        """
        Load the collection config.

        Raises:
            ProjectNotFoundError: If the project file does not exist
            ConfigValidationError: If the file does not match the schema
            StoreIOError: If the file cannot be read or is not valid JSON
        """
        if not self.exists():
            raise ProjectNotFoundError(f"No project found for {self.symbol} at {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreIOError(f"Failed to read {self.path}: {e}") from e

        try:
            return CollectionConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(format_validation_error(e)) from e

    def write(self, config: CollectionConfig) -> None:
        """
        Persist the collection config atomically.

        Raises:
            StoreIOError: If the lock cannot be taken or the file cannot be written
        """
        try:
            self.project_dir.mkdir(parents=True, exist_ok=True)
            with portalocker.Lock(self._get_lock_path(), timeout=LOCK_TIMEOUT):
                fd, tmp_path = tempfile.mkstemp(dir=self.project_dir, prefix=".project.", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(config.to_json_dict(), f, indent=2)
                        f.write("\n")
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, self.path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
        except portalocker.LockException as e:
            raise StoreIOError(f"Timed out waiting for lock on {self.path}") from e
        except OSError as e:
            raise StoreIOError(f"Failed to write {self.path}: {e}") from e
        logger.debug(f"Wrote {self.path}")

    def create(self, config: CollectionConfig) -> None:
        """
        Write a new project.

        Raises:
            StoreIOError: If a project with this symbol already exists
        """
        if self.exists():
            raise StoreIOError(f"Project {self.symbol} already exists at {self.path}")
        self.write(config)
        logger.info(f"Created project {self.symbol} at {self.path}")

    def save_deployment(self, record: DeploymentRecord) -> CollectionConfig:
        """Attach a deployment record to the stored config and persist it"""
        config = self.read()
        config.deployment = record
        self.write(config)
        logger.info(f"Recorded deployment of {self.symbol} at {record.contract_address}")
        return config

    def resolve_path(self, path: Union[str, Path]) -> Path:
        """Resolve a path from the project file relative to the project directory"""
        candidate = Path(os.path.expanduser(str(path)))
        return candidate if candidate.is_absolute() else self.project_dir / candidate

    @classmethod
    def list_projects(cls, root: Optional[Union[str, Path]] = None) -> List[str]:
        """Symbols (directory names) of every stored project"""
        projects_dir = (Path(root) if root else get_collection_dir()) / "projects"
        if not projects_dir.is_dir():
            return []
        return sorted(p.name for p in projects_dir.iterdir() if (p / PROJECT_FILE).is_file())
