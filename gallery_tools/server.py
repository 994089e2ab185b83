#!/usr/bin/env python3
"""
Local test server for the gallery site (Flask).

Serves files from the site root as-is, the way the static host will.
On start:
- port free: sync images.json / collections.json, then serve and open the browser
- port taken: ask whether to restart (kill + sync + serve), just open the browser, or quit

Usage:
  source .venv/bin/activate
  python3 -m gallery_tools.server --repo-root .
  PORT=8080 python3 -m gallery_tools.server --repo-root . --no-browser
"""

from __future__ import annotations

import argparse
import os
import re
import socket
import subprocess
import sys
import time
from pathlib import Path
from typing import Optional

from flask import Flask, Response
from werkzeug.utils import safe_join

from .sync import run_sync


HOST = "127.0.0.1"
PORT = 3000
INDEX_PAGE = "index.html"

MIME_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "text/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".svg": "image/svg+xml; charset=utf-8",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
DEFAULT_MIME = "application/octet-stream"


def content_type_for(path: str) -> str:
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME)


def clean_url_path(url_path: str) -> str:
    safe = url_path.lstrip("/")
    return re.sub(r"^(\.\.[/\\])+", "", safe)


def not_found() -> Response:
    return Response("404 Not Found", status=404, content_type="text/plain; charset=utf-8")


def create_app(site_root: Path) -> Flask:
    app = Flask(__name__)
    site_root = site_root.resolve()

    def serve(rel: str) -> Response:
        rel = clean_url_path(rel)
        target = safe_join(str(site_root), rel) if rel else None
        if target is None:
            return not_found()
        try:
            data = Path(target).read_bytes()
        except OSError:
            return not_found()
        return Response(data, status=200, content_type=content_type_for(target))

    @app.get("/")
    def root():
        return serve(INDEX_PAGE)

    @app.get("/<path:subpath>")
    def static_file(subpath: str):
        return serve(subpath)

    return app


# ----------------------------
# Port handling
# ----------------------------
def default_port() -> int:
    try:
        return int(os.environ.get("PORT", PORT))
    except ValueError:
        return PORT


def is_port_in_use(port: int, host: str = HOST) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.settimeout(0.5)
        try:
            s.connect((host, port))
        except OSError:
            return False
        return True


def _listening_pid(port: int) -> Optional[str]:
    if sys.platform != "win32":
        out = subprocess.run(["lsof", "-ti", f":{port}"], capture_output=True, text=True).stdout.strip()
        return out.splitlines()[0] if out else None

    out = subprocess.run(["netstat", "-ano"], capture_output=True, text=True).stdout
    for line in out.splitlines():
        parts = line.split()
        if len(parts) >= 5 and parts[1].endswith(f":{port}") and parts[3] == "LISTENING":
            return parts[-1] if parts[-1].isdigit() else None
    return None


def kill_process_on_port(port: int) -> None:
    try:
        pid = _listening_pid(port)
        if not pid:
            return
        if sys.platform == "win32":
            subprocess.run(["taskkill", "/PID", pid, "/F"], check=False)
        else:
            subprocess.run(["kill", "-9", pid], check=False)
        print(f"[server] Stopped process {pid} on port {port}")
    except OSError:
        # lsof / netstat not installed
        pass


def open_browser(url: str) -> None:
    try:
        import webbrowser
        if not webbrowser.open(url):
            print(f"[server] Open {url} manually.")
    except Exception:
        print(f"[server] Open {url} manually.")


def ask(question: str) -> str:
    try:
        return input(question).strip()
    except EOFError:
        return ""


# ----------------------------
# Entry
# ----------------------------
def sync_then_serve(repo_root: Path, host: str, port: int, sync: bool, browser: bool) -> None:
    if sync:
        run_sync(repo_root)
    app = create_app(repo_root)
    url = f"http://{host}:{port}"
    print(f"\n[server] Serving {repo_root} at {url} (Ctrl+C to stop)")
    if browser:
        open_browser(url)
    try:
        app.run(host=host, port=port, debug=False)
    except OSError as e:
        print(f"[error] Server failed: {e}", file=sys.stderr)
        if is_port_in_use(port, host):
            print(f"        Port {port} is already in use. Pick another with --port or stop that program.", file=sys.stderr)
        sys.exit(1)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--repo-root", default=".", help="Site root to serve (default: .)")
    ap.add_argument("--host", default=HOST)
    ap.add_argument("--port", type=int, default=default_port())
    ap.add_argument("--no-sync", action="store_true", help="Serve without syncing the JSON indexes first")
    ap.add_argument("--no-browser", action="store_true", help="Do not open a browser tab")
    args = ap.parse_args()

    repo_root = Path(args.repo_root).expanduser().resolve()
    url = f"http://{args.host}:{args.port}"
    sync = not args.no_sync
    browser = not args.no_browser

    try:
        if not is_port_in_use(args.port, args.host):
            sync_then_serve(repo_root, args.host, args.port, sync, browser)
            return

        print("\n[server] A test server is already running.\n")
        print("   [1] Sync and restart (stop the running server, apply changes, start again)")
        print("   [2] Open the running server in the browser")
        print("   [3] Quit\n")
        choice = ask("Choice (1/2/3): ")

        if choice == "1":
            print("\n[server] Stopping the running server, syncing and restarting...\n")
            kill_process_on_port(args.port)
            time.sleep(0.8)
            sync_then_serve(repo_root, args.host, args.port, sync, browser)
        elif choice == "2":
            open_browser(url)
        elif choice == "3":
            print("[server] Bye.")
        else:
            print("[server] Invalid choice. Quitting.")
    except Exception as e:
        print(f"[error] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
