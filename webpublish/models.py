"""
Value types shared by the publish pipeline
"""
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Optional


@dataclass
class Server:
    """SSH connection settings. `timeout` falls back to config.DEFAULT_TIMEOUT."""
    host: str = ""
    port: int = 22
    username: str = ""
    password: Optional[str] = None
    key_filename: Optional[str] = None
    timeout: Optional[int] = None

    @property
    def effective_timeout(self) -> int:
        from .config import DEFAULT_TIMEOUT
        return self.timeout or DEFAULT_TIMEOUT

    @property
    def address(self) -> str:
        return f"{self.username}@{self.host}:{self.port}"


@dataclass(frozen=True)
class Upload:
    """
    What to publish and where.

    dir               local build output directory
    server_dir        remote directory that holds the published artifact
    server_file_name  remote artifact name; derived from `dir` when None
    need_increment    replace only changed files instead of swapping the tree
    cmds              extra shell commands run after the tree is reconciled
    """
    dir: str = ""
    server_dir: str = ""
    server_file_name: Optional[str] = None
    need_increment: bool = False
    cmds: tuple = ()


@dataclass(frozen=True)
class FileRecord:
    path: str
    rel: str
    name: str
    ext: str

    @classmethod
    def from_path(cls, path: str, root: str) -> "FileRecord":
        p = PurePosixPath(path)
        try:
            rel = p.relative_to(PurePosixPath(root)).as_posix()
        except ValueError:
            rel = ""
        return cls(path=str(p), rel=rel, name=p.name, ext=p.suffix[1:])

    @property
    def parent_rel(self) -> str:
        parent = PurePosixPath(self.rel).parent.as_posix()
        return "" if parent == "." else parent


@dataclass(frozen=True)
class Difference:
    """A temp-tree file to publish. Empty `old_path` means a pure addition."""
    temp_path: str
    old_path: str
    rel: str

    @property
    def is_addition(self) -> bool:
        return not self.old_path


@dataclass
class PublishResult:
    file_count: int = 0
    delete_count: int = 0
    need_increment: bool = False
    commands: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ValidateCopy:
    """A single file to keep in sync under the remote user's home directory."""
    file_path: str = ""
    dest_dir: str = ""
    hash: Optional[str] = None
