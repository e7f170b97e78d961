#!/usr/bin/env python3
"""
webpublish  —  Incremental publishing of build output over SSH
================================================================

Subcommands:
  init      Create a .webpublish config file in the current directory.
  publish   Publish the configured build directory to the remote server.
  copy      Upload a single program file when its hash changed.

Run 'webpublish <subcommand> --help' for more details.
"""
import sys
import argparse
from pathlib import Path


def _load_profile(args) -> dict:
    """Resolve the nearest .webpublish and return the requested profile."""
    import webpublish.config as _cfg
    from webpublish.utils.logging import vlog

    path = _cfg.find_config()
    if path is None:
        print("error: no .webpublish file found in this directory or any parent.", file=sys.stderr)
        print("Run 'webpublish init' to create one.", file=sys.stderr)
        sys.exit(1)
    vlog(f"[config] Using {path}")

    data = _cfg.load_config_file(path)
    global_defaults = _cfg.load_global_config().get("defaults", {})
    return _cfg.get_profile(data, args.profile or "default", global_defaults)


# ── init ─────────────────────────────────────────────────────────────────────

def cmd_init(args):
    """Create a .webpublish profile file in the current directory."""
    from webpublish import config as _cfg

    target = Path.cwd() / _cfg.CONFIG_FILE_NAME

    if target.exists() and not args.force:
        print(f"error: {_cfg.CONFIG_FILE_NAME} already exists in {Path.cwd()}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        sys.exit(1)

    g_defaults = _cfg.load_global_config().get("defaults", {})

    server = args.server or g_defaults.get("server", "example.com")
    user = args.user or g_defaults.get("user", _cfg.SSH_USER)
    port = args.port or int(g_defaults.get("port", _cfg.SSH_PORT))
    local_dir = (args.local or "dist").replace("\\", "/")
    server_dir = args.server_dir or g_defaults.get("server_dir", "")
    if not server_dir:
        print("error: --server-dir is required.", file=sys.stderr)
        sys.exit(1)

    def _yq(value: str) -> str:
        """Wrap a string in YAML single quotes, escaping embedded single quotes."""
        return "'" + value.replace("'", "''") + "'"

    lines = [
        "# .webpublish: webpublish project configuration",
        "#",
        "# profiles: list of publish targets for this project.",
        "# Set `password`, `password_env` (name of an environment variable) or `ssh_key`.",
        "profiles:",
        f"  - name: {args.profile or 'default'}",
        f"    server: {_yq(server)}",
        f"    port: {port}",
        f"    user: {_yq(user)}",
        "    password_env: 'WEBPUBLISH_PASSWORD'",
        f"    timeout: {_cfg.DEFAULT_TIMEOUT}",
        f"    local_dir: {_yq(local_dir)}",
        f"    server_dir: {_yq(server_dir)}",
        f"    need_increment: {'true' if args.increment else 'false'}",
        "    cmds: []",
    ]
    content = "\n".join(lines) + "\n"

    if args.dry_run:
        print(f"[dry-run] Would write {target}:")
        print(content)
        return

    target.write_text(content, encoding="utf-8")
    print(f"Created {target}")


# ── publish ──────────────────────────────────────────────────────────────────

def cmd_publish(args):
    """Publish using the nearest .webpublish config file."""
    import webpublish.config as _cfg
    from webpublish.core.reconciler import reconcile
    from webpublish.errors import PublishError

    profile = _load_profile(args)
    if args.full:
        profile["need_increment"] = False
    server = _cfg.build_server(profile)
    upload = _cfg.build_upload(profile)

    print(f"\n{'=' * 64}")
    print(f"  Publish  {upload.dir}")
    print(f"     →    {server.address}:{upload.server_dir}")
    print(f"{'=' * 64}\n")

    try:
        result = reconcile(server, upload)
    except PublishError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)

    print()
    print(f"{'─' * 64}")
    print(" SUMMARY")
    print(f"  Mode       : {'incremental' if result.need_increment else 'full'}")
    print(f"  Published  : {result.file_count}")
    print(f"  Deleted    : {result.delete_count}")
    print(f"  Commands   : {len(result.commands)}")
    print(f"{'─' * 64}")


# ── copy ─────────────────────────────────────────────────────────────────────

def cmd_copy(args):
    """Upload one file into the remote home directory if its hash differs."""
    import webpublish.config as _cfg
    from webpublish.errors import PublishError
    from webpublish.models import ValidateCopy
    from webpublish.operations.copy import validate_copy

    profile = _load_profile(args)
    server = _cfg.build_server(profile)
    copy = ValidateCopy(file_path=args.file, dest_dir=args.dest_dir, hash=args.hash)
    try:
        dest = validate_copy(server, copy)
    except PublishError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    print(dest)


# ── main ──────────────────────────────────────────────────────────────────────

def main():
    """CLI entry point for webpublish"""
    from webpublish.utils.logging import set_verbose

    parser = argparse.ArgumentParser(
        prog="webpublish",
        description="Incremental publishing of build output over SSH",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── init ──────────────────────────────────────────────────────────────────
    init_p = subparsers.add_parser(
        "init",
        help="Create a .webpublish config file in the current directory",
        description="Create a .webpublish YAML config file for this project.",
    )
    init_p.add_argument("--local", metavar="PATH",
                        help="Local build output directory (default: dist)")
    init_p.add_argument("--server-dir", metavar="PATH",
                        help="Remote directory that receives the artifact")
    init_p.add_argument("--server", metavar="HOST",
                        help="Remote server hostname or IP")
    init_p.add_argument("--user", metavar="NAME",
                        help="SSH username (default: root)")
    init_p.add_argument("--port", type=int, metavar="N",
                        help="SSH port (default: 22)")
    init_p.add_argument("--increment", action="store_true",
                        help="Enable incremental publishing in the profile")
    init_p.add_argument("--profile", metavar="NAME", default="default",
                        help="Profile name to create (default: default)")
    init_p.add_argument("--force", action="store_true",
                        help="Overwrite existing .webpublish")
    init_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Preview without writing files")
    init_p.add_argument("-v", "--verbose", action="store_true",
                        help="Show extra output")

    # ── publish ───────────────────────────────────────────────────────────────
    pub_p = subparsers.add_parser(
        "publish",
        help="Publish the build directory using the nearest .webpublish config",
        description="Stage, diff and publish the configured build directory.",
    )
    pub_p.add_argument("--profile", metavar="NAME", default="default",
                       help="Profile to use (default: default)")
    pub_p.add_argument("--full", action="store_true",
                       help="Force a full publish even if the profile is incremental")
    pub_p.add_argument("-v", "--verbose", action="store_true",
                       help="Show extra output")

    # ── copy ──────────────────────────────────────────────────────────────────
    copy_p = subparsers.add_parser(
        "copy",
        help="Upload a single file when its SHA-256 differs from the remote copy",
        description="Upload FILE into ~/DEST_DIR on the server unless it is unchanged.",
    )
    copy_p.add_argument("file", metavar="FILE", help="Local file to upload")
    copy_p.add_argument("dest_dir", metavar="DEST_DIR",
                        help="Destination directory, relative to the remote home")
    copy_p.add_argument("--hash", metavar="SHA256", default=None,
                        help="Known SHA-256 of FILE (computed when omitted)")
    copy_p.add_argument("--profile", metavar="NAME", default="default",
                        help="Profile to use (default: default)")
    copy_p.add_argument("-v", "--verbose", action="store_true",
                        help="Show extra output")

    args = parser.parse_args()
    set_verbose(getattr(args, "verbose", False))

    if args.command == "init":
        cmd_init(args)
    elif args.command == "publish":
        cmd_publish(args)
    elif args.command == "copy":
        cmd_copy(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
