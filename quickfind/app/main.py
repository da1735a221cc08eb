from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import httpx
import uvicorn
from PySide6.QtCore import QtMsgType, qInstallMessageHandler
from PySide6.QtWidgets import QApplication

from quickfind.app import config
from quickfind.core.models import SearchConfig
from quickfind.server import api as api_module
from quickfind.server.adapters.files import FileAccessError, LocalFileBackend
from quickfind.server.adapters.http import HttpSearchBackend

logger = logging.getLogger(__name__)

# QUICKFIND_DEBUG=1 turns on scheduler/cancellation tracing on stderr.


def _debug_enabled(var_name: str) -> bool:
    """Check if a debug flag is enabled."""
    return os.getenv(var_name, "0") not in ("0", "false", "False", "", None)


def _configure_logging() -> None:
    level = logging.DEBUG if _debug_enabled("QUICKFIND_DEBUG") else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")


def _qt_message_handler(mode: QtMsgType, context, message: str) -> None:
    """Custom Qt message handler to suppress known harmless warnings."""
    if "QWindowsFontEngineDirectWrite::recalcAdvances" in message:
        return
    if "Accessible invalid" in message or "Could not find accessible on path" in message:
        return
    if mode == QtMsgType.QtDebugMsg:
        logger.debug("Qt: %s", message)
    elif mode == QtMsgType.QtWarningMsg:
        logger.warning("Qt: %s", message)
    elif mode == QtMsgType.QtCriticalMsg:
        logger.error("Qt: %s", message)
    elif mode == QtMsgType.QtFatalMsg:
        logger.critical("Qt: %s", message)
        sys.exit(1)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="QuickFind: incremental find-in-project popup.")
    parser.add_argument("root", nargs="?", default=os.getcwd(), help="Project directory to search (default: cwd).")
    parser.add_argument("--server", help="Search through a QuickFind HTTP API at this base URL instead of locally.")
    parser.add_argument("--serve", nargs="?", const="127.0.0.1:8765", help="Run the search API headless [host:port].")
    parser.add_argument("--quiet-ms", type=int, help="Debounce quiet window in milliseconds.")
    parser.add_argument("--page-size", type=int, help="Maximum results per search.")
    parser.add_argument("--query", default=None, help="Initial query (default: last used query).")
    return parser.parse_args(argv)


def _build_search_config(args: argparse.Namespace, default_page_size: int) -> SearchConfig:
    base = config.load_search_config(default_page_size)
    quiet_ms = base.quiet_window_ms if args.quiet_ms is None else max(0, args.quiet_ms)
    page_size = base.page_size_cap if args.page_size is None else max(1, args.page_size)
    return SearchConfig(quiet_window_ms=quiet_ms, page_size_cap=page_size)


def _split_bind(bind: str) -> tuple[str, int]:
    if ":" in bind:
        host, port_str = bind.rsplit(":", 1)
        try:
            return host or "127.0.0.1", int(port_str)
        except ValueError:
            pass
    return bind or "127.0.0.1", 8765


def _run_server_mode(args: argparse.Namespace) -> int:
    """Serve /api/search for the project root without a GUI."""
    host, port = _split_bind(args.serve)
    try:
        api_module.served_root.select(args.root)
    except FileAccessError as exc:
        logger.error("%s", exc)
        return 2
    logger.info("QuickFind API on http://%s:%s (root %s)", host, port, args.root)
    uvicorn.run(api_module.get_app(), host=host, port=port, log_level="info")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    _configure_logging()
    config.init_settings()

    if args.serve:
        return _run_server_mode(args)

    qInstallMessageHandler(_qt_message_handler)
    app = QApplication.instance() or QApplication(sys.argv[:1])

    from quickfind.app.ui.find_popup import FindPopup

    client: Optional[httpx.Client] = None
    project_root: Optional[Path] = None
    if args.server:
        client = httpx.Client(base_url=args.server, timeout=10.0)
        backend = HttpSearchBackend(client)
    else:
        try:
            backend = LocalFileBackend(args.root)
        except FileAccessError as exc:
            logger.error("%s", exc)
            return 2
        project_root = backend.root
    if args.page_size is not None:
        backend.page_size = max(1, args.page_size)

    initial_query = args.query if args.query is not None else config.load_last_query()
    popup = FindPopup(
        backend,
        project_root=project_root,
        search_config=_build_search_config(args, backend.page_size),
        initial_query=initial_query,
    )
    popup.resultActivated.connect(lambda path, line: print(f"{path}:{line}" if line else path))
    popup.show()
    try:
        return app.exec()
    finally:
        if client is not None:
            client.close()


if __name__ == "__main__":
    raise SystemExit(main())
