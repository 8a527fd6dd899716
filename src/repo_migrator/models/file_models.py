"""File tree models shared by the source and target trees."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FileType(str, Enum):
    """Kind of node in a file tree."""

    FILE = "file"
    DIRECTORY = "directory"


class FileStatus(str, Enum):
    """Generation status of a node in a file tree."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    ERROR = "error"


class FileNode(BaseModel):
    """A file or directory in a repository tree.

    ``path`` is slash-delimited and relative to the repository root.
    ``children`` is only populated for directories.
    """

    model_config = ConfigDict(frozen=False)

    path: str
    name: str
    type: FileType
    status: FileStatus = FileStatus.PENDING
    content: Optional[str] = None
    children: Optional[list["FileNode"]] = None

    @property
    def is_file(self) -> bool:
        return self.type == FileType.FILE

    @property
    def is_directory(self) -> bool:
        return self.type == FileType.DIRECTORY


class GeneratedFile(BaseModel):
    """Path/content pair used for verification snapshots."""

    model_config = ConfigDict(frozen=False)

    path: str
    content: str = ""
