"""
Content digests and hash-in-filename matching

Bundlers embed a content hash in built asset names (`app.3f2a9c.js`,
`3f2a9c.chunk.js`, `9b71e0.css`). Two such names can denote the same logical
asset from different builds, so pairing old and new files needs to look past
the hash part of the name.
"""
import hashlib
import re
from typing import BinaryIO, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import FileRecord

_LEADING_HASH_RE = re.compile(r"^[0-9a-fA-F.]+")
_HASH_INFIX_RE = re.compile(r"\.[0-9a-fA-F.]+")

_CHUNK = 65536


def digest(data: bytes) -> str:
    """SHA-256 hex digest of a byte buffer."""
    return hashlib.sha256(data).hexdigest()


def digest_stream(fileobj: BinaryIO) -> str:
    """SHA-256 hex digest of everything readable from *fileobj*."""
    h = hashlib.sha256()
    for chunk in iter(lambda: fileobj.read(_CHUNK), b""):
        h.update(chunk)
    return h.hexdigest()


def starts_with_hash(name_a: str, name_b: str, ext_a: str, ext_b: str) -> bool:
    """
    True when both names are a bare hash plus extension (`3f2a9c.js`).

    The hash *is* the identity of such files, so two of them are never paired
    by name; only a byte-identical name followed by a digest check can tell
    they are the same.
    """
    residue_a = _LEADING_HASH_RE.sub("", name_a, count=1)
    residue_b = _LEADING_HASH_RE.sub("", name_b, count=1)
    return residue_a == ext_a and residue_b == ext_b


def filenames_equal_ignoring_hash(name_a: str, name_b: str) -> bool:
    """
    True when both names carry a `.hash` infix and are equal once it is dropped.

        app.3f2a9c.js / app.9b71e0.js  -> True
        app.js        / vendor.js      -> False
    """
    if not _HASH_INFIX_RE.search(name_a) or not _HASH_INFIX_RE.search(name_b):
        return False
    stripped_a = _HASH_INFIX_RE.sub(".", name_a, count=1)
    stripped_b = _HASH_INFIX_RE.sub(".", name_b, count=1)
    return stripped_a == stripped_b


def same_logical_asset(name_a: str, name_b: str, ext_a: str, ext_b: str) -> bool:
    """True when both names follow a hash naming convention (stem or infix)."""
    if starts_with_hash(name_a, name_b, ext_a, ext_b):
        return True
    return bool(_HASH_INFIX_RE.search(name_a)) and bool(_HASH_INFIX_RE.search(name_b))


def candidate_match(live: "FileRecord", temp: "FileRecord") -> bool:
    """Whether *live* is the file that *temp* will replace."""
    if live.rel == temp.rel:
        return True
    # Only siblings can be hash variants of one another
    if live.parent_rel != temp.parent_rel:
        return False
    if live.name == temp.name:
        return True
    if starts_with_hash(live.name, temp.name, live.ext, temp.ext):
        return False
    return filenames_equal_ignoring_hash(live.name, temp.name)
