"""Application entry point for the gitstatus notification poller."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from adapters.json_config_store import JsonConfigStore
from adapters.notification_formatting import format_snapshot
from client import build_client_factory
from core.models import RuntimeSnapshot
from core.runtime import NotificationRuntime

NAME = "GITSTATUS"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict, token: str) -> list[str]:
    values = [token] if token else []
    redact_cfg = config.get("redact", {}) if config else {}
    if redact_cfg.get("enabled", True):
        for name in redact_cfg.get("patterns", ["GITHUB_TOKEN"]):
            value = os.getenv(name)
            if value:
                values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(token: str) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config, token)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/gitstatus.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_runtime() -> NotificationRuntime:
    store = JsonConfigStore(settings.CONFIG_PATH, fallback_token=settings.GITHUB_TOKEN)
    config = store.load()
    _configure_logging(config.token)
    return NotificationRuntime(
        config,
        build_client_factory(settings.API_BASE_URL),
        config_store=store,
    )


class _ConsolePrinter:
    """Print every published snapshot and enrich new threads once."""

    def __init__(self, runtime: NotificationRuntime) -> None:
        self._runtime = runtime
        self._last_ids: tuple[str, ...] = ()

    def __call__(self, snapshot: RuntimeSnapshot) -> None:
        ids = tuple(thread.id for thread in snapshot.notifications)
        if ids != self._last_ids:
            self._last_ids = ids
            # Enrichment is requested only when membership changes; threads
            # whose lookup failed are not retried on every update.
            self._runtime.prefetch_details()
        print(format_snapshot(snapshot))
        print()


async def _watch(runtime: NotificationRuntime) -> None:
    runtime.subscribe(_ConsolePrinter(runtime))
    runtime.start()
    try:
        # Runs until interrupted; the poll loop owns all network activity.
        await asyncio.Event().wait()
    finally:
        await runtime.shutdown()


async def _list_once(runtime: NotificationRuntime) -> None:
    polled = asyncio.Event()

    def on_update(snapshot: RuntimeSnapshot) -> None:
        if snapshot.last_poll is not None or snapshot.message:
            polled.set()

    runtime.subscribe(on_update)
    runtime.start()
    try:
        await polled.wait()
        if runtime.prefetch_details():
            await runtime.wait_for_details()
        print(format_snapshot(runtime.snapshot()))
    finally:
        await runtime.shutdown()


async def _verify(runtime: NotificationRuntime) -> bool:
    ok, message = await runtime.verify_token()
    if ok:
        print("Successfully verified token")
    else:
        print(f"Fail to verify token: {message}")
    return ok


def _run() -> None:
    _print_banner()
    runtime = _build_runtime()
    logging.getLogger(__name__).info("Starting gitstatus")
    try:
        asyncio.run(_watch(runtime))
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Interrupted, shutting down")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="gitstatus")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Poll notifications until interrupted")
    subparsers.add_parser("list", help="Fetch the first page once and print it")
    subparsers.add_parser("verify", help="Check that the configured token works")

    args = parser.parse_args(argv)
    if args.command == "list":
        asyncio.run(_list_once(_build_runtime()))
        return
    if args.command == "verify":
        if not asyncio.run(_verify(_build_runtime())):
            raise SystemExit(1)
        return
    _run()


if __name__ == "__main__":
    main()
