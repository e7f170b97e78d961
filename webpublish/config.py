"""
Configuration constants and profile loading for webpublish
"""
import os
from pathlib import Path
from typing import Optional

from .models import Server, Upload

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS
# ══════════════════════════════════════════════════════════════════════════════

SSH_PORT = 22
SSH_USER = "root"

# Connect / command timeout (seconds) when the server entry leaves it unset
DEFAULT_TIMEOUT = 10

# Keep-alive interval for the SSH transport (seconds)
KEEPALIVE = 30

# Scratch directory created next to server_dir; archives and temp trees live here
SCRATCH_DIR_NAME = "__SFTP_TEMP_DIR__"

# Suffix format appended to the archive name so parallel builds don't collide
ARCHIVE_STAMP_FORMAT = "%Y%m%d%H%M%S"

# Diff worker pool, and the cap on concurrent remote digest reads
DIFF_WORKERS = 8
MAX_INFLIGHT_DIGESTS = 4

# Retry settings
RETRY_MAX = 3
RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt

CONFIG_FILE_NAME = ".webpublish"


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/webpublish/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for webpublish."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "webpublish"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "webpublish"
    return Path.home() / ".config" / "webpublish"


def load_global_config() -> dict:
    """Load global config from the webpublish config directory."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    try:
        return load_config_file(cfg_path)
    except Exception:
        return {}


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── .webpublish (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .webpublish YAML file.
    Returns the Path if found, or None if no .webpublish exists in any parent.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config_file(path: Path) -> dict:
    """Parse a .webpublish YAML file and return its contents as a dict."""
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_profile(data: dict, profile_name: str = "default",
                global_defaults: Optional[dict] = None) -> dict:
    """
    Extract a named profile from a .webpublish data dict.
    Falls back to the first profile if the named one is not found.
    Returns a flat profile dict merged over the global and file-level defaults.
    """
    merged = dict(global_defaults or {})
    merged.update(data.get("defaults", {}) or {})
    profiles = data.get("profiles", []) or []
    if not profiles:
        return merged
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged.update(profile)
    return merged


# ══════════════════════════════════════════════════════════════════════════════
#  PROFILE → MODELS
# ══════════════════════════════════════════════════════════════════════════════

def build_server(profile: dict) -> Server:
    """
    Build the connection settings from a profile.
    Supports keys: server, port, user (or username), password, password_env,
                   ssh_key, timeout.
    """
    password = profile.get("password")
    if not password and profile.get("password_env"):
        password = os.environ.get(str(profile["password_env"]))
    timeout = profile.get("timeout")
    ssh_key = profile.get("ssh_key")
    return Server(
        host=str(profile.get("server", "")),
        port=int(profile.get("port", SSH_PORT)),
        username=str(profile.get("user", profile.get("username", SSH_USER))),
        password=str(password) if password else None,
        key_filename=str(Path(ssh_key).expanduser()) if ssh_key else None,
        timeout=int(timeout) if timeout else None,
    )


def build_upload(profile: dict) -> Upload:
    """
    Build the upload settings from a profile.
    Supports keys: local_dir, server_dir, server_file_name, need_increment, cmds.
    """
    local_dir = profile.get("local_dir", "")
    cmds = profile.get("cmds") or []
    if isinstance(cmds, str):
        cmds = [cmds]
    name = profile.get("server_file_name")
    return Upload(
        dir=str(Path(local_dir).expanduser()) if local_dir else "",
        server_dir=str(profile.get("server_dir", "")).strip(),
        server_file_name=str(name) if name else None,
        need_increment=bool(profile.get("need_increment", False)),
        cmds=tuple(str(c) for c in cmds),
    )
