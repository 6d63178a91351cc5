import argparse
import logging
import plistlib
import shutil
import subprocess
import sys
from pathlib import Path

from clipsense.config import DB_PATH, LOG_PATH, MENU_DISPLAY_COUNT
from clipsense.utils import display_preview, ensure_dirs

PLIST_LABEL = "com.clipsense.app"
LAUNCHAGENT_DIR = Path.home() / "Library" / "LaunchAgents"
PLIST_PATH = LAUNCHAGENT_DIR / f"{PLIST_LABEL}.plist"


def get_program_arguments() -> list[str]:
    """Command line launchd should run: the installed script, else ``python -m``."""
    executable = shutil.which("clipsense")
    if executable:
        return [executable, "run"]
    return [sys.executable, "-m", "clipsense", "run"]


def create_plist(program_arguments: list[str]) -> str:
    """Generate the LaunchAgent plist content."""
    log_path = str(LOG_PATH)
    return plistlib.dumps({
        "Label": PLIST_LABEL,
        "ProgramArguments": program_arguments,
        "RunAtLoad": True,
        "KeepAlive": True,
        "StandardOutPath": log_path,
        "StandardErrorPath": log_path,
    }).decode("utf-8")


def _launchctl(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(["launchctl", *args], capture_output=True, text=True)


def install_launchagent() -> int:
    """Install and start the LaunchAgent."""
    ensure_dirs()

    program_arguments = get_program_arguments()
    print(f"Installing LaunchAgent for: {' '.join(program_arguments)}")

    LAUNCHAGENT_DIR.mkdir(parents=True, exist_ok=True)
    if PLIST_PATH.exists():
        _launchctl("unload", str(PLIST_PATH))

    PLIST_PATH.write_text(create_plist(program_arguments))
    print(f"Created: {PLIST_PATH}")

    result = _launchctl("load", str(PLIST_PATH))
    if result.returncode != 0:
        print(f"Failed to load LaunchAgent: {result.stderr}")
        return 1
    print("ClipSense is now running in the background and will start on login.")
    return 0


def uninstall_launchagent() -> int:
    """Stop and remove the LaunchAgent."""
    if not PLIST_PATH.exists():
        print("LaunchAgent not installed.")
        return 0

    _launchctl("unload", str(PLIST_PATH))
    PLIST_PATH.unlink()
    print("LaunchAgent uninstalled. ClipSense will no longer start on login.")
    return 0


def check_status() -> int:
    """Report whether the LaunchAgent is loaded."""
    if _launchctl("list", PLIST_LABEL).returncode == 0:
        print("ClipSense is running.")
        return 0

    print("ClipSense is not running.")
    if PLIST_PATH.exists():
        print(f"LaunchAgent installed but not loaded: {PLIST_PATH}")
    else:
        print("LaunchAgent not installed. Run: clipsense install")
    return 1


def print_entries(entries) -> None:
    if not entries:
        print("(No clipboard history)")
        return
    for entry in entries:
        star = "*" if entry.is_favorite else " "
        types = ",".join(d.type for d in entry.detected_types) or "-"
        print(f"{star} {entry.id[:8]}  {entry.created_at:%Y-%m-%d %H:%M}  [{types}]  {display_preview(entry)}")


def show_history(limit: int) -> int:
    """Print the most recent clips."""
    from clipsense.storage import StorageManager

    ensure_dirs()
    with StorageManager(DB_PATH) as storage:
        print_entries(storage.get_recent(limit))
    return 0


def search_history(query: str, limit: int) -> int:
    """Print clips whose content contains the query."""
    from clipsense.storage import StorageManager

    ensure_dirs()
    with StorageManager(DB_PATH) as storage:
        results = storage.search(query, limit=limit)
    print_entries(results)
    return 0 if results else 1


def run_app():
    """Run the ClipSense application."""
    ensure_dirs()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )

    from clipsense.app import ClipSenseApp

    app = ClipSenseApp()
    app.run()


def main():
    parser = argparse.ArgumentParser(
        description="ClipSense - Clipboard history with content detection for macOS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  (none), run   Run ClipSense in foreground
  install       Install as LaunchAgent (runs on login)
  uninstall     Remove LaunchAgent
  status        Check if ClipSense is running
  history       Print recent clipboard history
  search QUERY  Search clipboard history

Examples:
  clipsense install         # Install and start as background service
  clipsense history -n 20   # Show the last 20 clips
  clipsense search token    # Find clips mentioning "token"
""",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "install", "uninstall", "status", "history", "search"],
        help="Command to run",
    )
    parser.add_argument("query", nargs="?", help="Search text (for the search command)")
    parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=MENU_DISPLAY_COUNT,
        help="Number of entries to print (history/search)",
    )

    args = parser.parse_args()

    if args.command == "install":
        sys.exit(install_launchagent())
    elif args.command == "uninstall":
        sys.exit(uninstall_launchagent())
    elif args.command == "status":
        sys.exit(check_status())
    elif args.command == "history":
        sys.exit(show_history(args.limit))
    elif args.command == "search":
        if not args.query:
            parser.error("search requires a QUERY")
        sys.exit(search_history(args.query, args.limit))
    else:
        run_app()


if __name__ == "__main__":
    main()
