"""Application entry point for the lootrelay host bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Callable, Iterable, Optional, TextIO

from art import tprint

import settings
from adapters.auth import AUTH_TOKEN_KEY
from adapters.http_client import BackendApiClient
from adapters.item_catalog import JsonItemCatalog
from adapters.screenshot import BackendScreenshotCapture, DirectoryFrameSource
from adapters.signal_mapper import HostSession, LoginEvent
from adapters.stats_refresher import BackendStatsRefresher
from client import Backend, build_backend
from core.config import DedupConfig, TrackingConfig
from core.dedup import DedupStore
from core.destinations import (
    DESTINATIONS_KEY,
    LEGACY_EVENT_KEY,
    LEGACY_SERVER_KEY,
    load_destination_set,
    parse_destinations,
    save_destinations,
    save_legacy_server,
)
from core.ports import TransportError
from core.processor import DropProcessor
from core.recent_drops import RecentDrops

NAME = "LOOTRELAY"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


SecretSource = Callable[[], Iterable[Optional[str]]]


class _RedactingFormatter(logging.Formatter):
    """Masks credentials in every record.

    Secrets are pulled per record, so a token activated after start-up
    (``login``, or an environment seed accepted by the backend) is masked too.
    """

    def __init__(self, secrets: SecretSource, fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = secrets

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        # Longest first so a token containing another secret is fully masked.
        for secret in sorted({s for s in self._secrets() if s}, key=len, reverse=True):
            message = message.replace(secret, "***")
        return message


def _credential_source(redact_cfg: dict, backend: Backend) -> SecretSource:
    """Collect the values to mask: env secrets, stored credentials, live token."""

    if not redact_cfg.get("enabled", False):
        return lambda: ()

    env_values = [os.getenv(name) for name in redact_cfg.get("patterns", [])]
    # Stored values are read once; the live token comes from the auth manager.
    stored_values = [backend.store.read(key) for key in redact_cfg.get("store_keys", [AUTH_TOKEN_KEY])]

    def _secrets() -> list[Optional[str]]:
        return [*env_values, *stored_values, backend.auth.auth_token()]

    return _secrets


def _file_handler(file_cfg: dict) -> logging.Handler:
    path = file_cfg.get("path", "logs/lootrelay.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging(backend: Backend) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _RedactingFormatter(
        _credential_source(config.get("redact", {}), backend),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_file_handler(file_cfg))
    if not handlers:
        return

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers, force=True)


def _load_catalog() -> JsonItemCatalog:
    if not os.path.exists(settings.ITEM_CATALOG_PATH):
        logging.getLogger(__name__).warning(
            "Item catalog %s not found, every item will be valued at 0gp",
            settings.ITEM_CATALOG_PATH,
        )
        return JsonItemCatalog({})
    return JsonItemCatalog.from_file(settings.ITEM_CATALOG_PATH)


def _tracking_config() -> TrackingConfig:
    return TrackingConfig(
        track_loot=settings.TRACK_LOOT,
        track_collection_log=settings.TRACK_COLLECTION_LOG,
        track_pets=settings.TRACK_PETS,
        capture_screenshots=settings.CAPTURE_SCREENSHOTS,
    )


def _backend_with_logging() -> Backend:
    backend = build_backend()
    _configure_logging(backend)
    return backend


async def _process_stream(
    stream: TextIO,
    processor: DropProcessor,
    session: HostSession,
    stats: BackendStatsRefresher,
) -> None:
    """Feed every host event through the processor, one task per drop."""

    logger = logging.getLogger(__name__)
    in_flight: set[asyncio.Task] = set()

    async def _handle(event) -> None:
        try:
            await processor.handle(event)
        except Exception:
            logger.exception("Error while processing %s", type(event).__name__)

    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            break
        try:
            event = session.map_line(line)
        except Exception:
            # One malformed line must not stop the stream.
            logger.exception("Skipping malformed host event: %r", line[:200])
            continue
        if event is None:
            continue
        if isinstance(event, LoginEvent):
            if event.player_name:
                stats.request_refresh(event.player_name)
            continue
        task = asyncio.create_task(_handle(event))
        in_flight.add(task)
        task.add_done_callback(in_flight.discard)

    if in_flight:
        await asyncio.gather(*in_flight)
    await stats.drain()


def _run(signals_path: Optional[str]) -> None:
    _print_banner()
    backend = _backend_with_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting lootrelay")
    if not backend.auth.check_stored_auth(fallback_token=settings.AUTH_TOKEN):
        logger.warning("Not authenticated; drops will not be relayed. Run `lootrelay login --token ...`")

    destinations = load_destination_set(backend.store)
    if not destinations.is_configured:
        logger.warning("No destinations configured; run `lootrelay destinations --import ...` first")
    logger.info(
        "%s destinations are loaded (legacy fallback: %s, lowest threshold: %sgp)",
        len(destinations.destinations),
        destinations.uses_legacy_fallback,
        destinations.lowest_active_threshold(),
    )

    session = HostSession()
    stats = BackendStatsRefresher(backend.api)
    screenshots = BackendScreenshotCapture(DirectoryFrameSource(settings.SCREENSHOT_DIR), backend.api)
    processor = DropProcessor(
        auth=backend.auth,
        store=backend.store,
        catalog=_load_catalog(),
        follower=session,
        transport=backend.api,
        screenshots=screenshots,
        stats=stats,
        tracking=_tracking_config(),
        dedup=DedupStore(
            DedupConfig(
                collection_log_window_ms=settings.DEDUP_COLLECTION_LOG_WINDOW_MS,
                pet_correlation_window_ms=settings.DEDUP_PET_CORRELATION_WINDOW_MS,
                eviction_ms=settings.DEDUP_EVICTION_MS,
            )
        ),
        recent_drops=RecentDrops(settings.RECENT_DROPS_MAX),
    )

    stream: TextIO
    if signals_path:
        stream = open(signals_path, "r", encoding="utf-8")
    else:
        stream = sys.stdin
    logger.info("Listening for host events on %s", signals_path or "stdin")
    try:
        asyncio.run(_process_stream(stream, processor, session, stats))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        backend.api.close()
        if stream is not sys.stdin:
            stream.close()

    for record in processor.recent_drops.snapshot():
        logger.info(
            "Recent: %s x%s (%sgp) from %s by %s",
            record.name,
            record.quantity,
            record.value,
            record.source_name,
            record.player_name,
        )


def _status() -> None:
    _print_banner()
    backend = _backend_with_logging()
    backend.auth.check_stored_auth(fallback_token=settings.AUTH_TOKEN)

    print(f"Auth: {backend.auth.status} ({backend.auth.username or 'no user'})")
    print(
        "Tracking: loot={} collection_log={} pets={} screenshots={}".format(
            settings.TRACK_LOOT,
            settings.TRACK_COLLECTION_LOG,
            settings.TRACK_PETS,
            settings.CAPTURE_SCREENSHOTS,
        )
    )

    destinations = load_destination_set(backend.store)
    if destinations.uses_legacy_fallback:
        print(f"Legacy server: {destinations.legacy_server_id} (event: {destinations.legacy_event_id or '-'})")
    elif not destinations.destinations:
        print("No destinations configured.")
    for index, destination in enumerate(destinations.destinations, start=1):
        print(f"{index}. server {destination.server_id} | event {destination.event_id or '-'}")
        for channel in destination.channels:
            kinds = [
                label
                for label, enabled in (
                    ("drops", channel.accepts_valuable_drops),
                    ("clog", channel.accepts_collection_log),
                    ("pets", channel.accepts_pets),
                )
                if enabled
            ]
            print(f"   #{channel.channel_id} | min {channel.min_value}gp | {', '.join(kinds) or 'nothing'}")
    print(f"Lowest active threshold: {destinations.lowest_active_threshold()}gp")


def _print_servers(api: BackendApiClient) -> None:
    servers = api.get_servers()
    if not servers:
        print("No servers found. Is the account linked and the bot invited?")
        return
    for server in servers:
        bot = "bot installed" if server.has_bot else "bot missing"
        print(f"{server.id} | {server.name} | {bot}")


def _print_server_details(api: BackendApiClient, server_id: str) -> None:
    channels = api.get_server_channels(server_id)
    print(f"Channels for server {server_id}:")
    if not channels:
        print("   none")
    for channel in channels:
        print(f"   {channel.id} | {channel.label} ({channel.type})")

    events = api.get_server_events(server_id)
    if events:
        print("Events:")
        for event in events:
            print(f"   {event.id} | {event.name} | {event.type or '-'} | {event.status or '-'}")


def _destinations(args: argparse.Namespace) -> None:
    backend = _backend_with_logging()
    store = backend.store

    if args.list_servers or args.channels:
        backend.auth.check_stored_auth(fallback_token=settings.AUTH_TOKEN)
        try:
            if args.list_servers:
                _print_servers(backend.api)
            else:
                _print_server_details(backend.api, args.channels)
        except TransportError as exc:
            raise SystemExit(f"Could not reach the backend: {exc}") from exc
        finally:
            backend.api.close()
        return

    if args.clear:
        removed = [key for key in (DESTINATIONS_KEY, LEGACY_SERVER_KEY, LEGACY_EVENT_KEY) if store.delete(key)]
        print(f"Destinations cleared ({len(removed)} keys removed).")
        return

    if args.import_path:
        with open(args.import_path, "r", encoding="utf-8") as handle:
            parsed = parse_destinations(handle.read())
        if not parsed:
            raise SystemExit(f"No valid destinations found in {args.import_path}")
        save_destinations(store, parsed)
        print(f"Saved {len(parsed)} destinations.")
        return

    if args.legacy:
        save_legacy_server(store, args.legacy, args.event)
        print(f"Legacy server set to {args.legacy}.")
        return

    _status()


def _login(token: str) -> None:
    backend = _backend_with_logging()
    if not backend.auth.login(token):
        raise SystemExit("Token was rejected by the backend.")
    print("Logged in.")


def _logout() -> None:
    backend = _backend_with_logging()
    backend.auth.logout()
    print("Logged out.")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="lootrelay")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Relay drops from a host event stream")
    run_parser.add_argument("--signals", help="JSON-lines file of host events (default: stdin)")

    subparsers.add_parser("status", help="Show authentication and destination status")

    dest_parser = subparsers.add_parser("destinations", help="Configure drop destinations")
    group = dest_parser.add_mutually_exclusive_group()
    group.add_argument("--import", dest="import_path", help="JSON file with the destination list")
    group.add_argument("--legacy", help="Single server id used when no destinations are configured")
    group.add_argument("--clear", action="store_true", help="Remove every destination")
    group.add_argument("--list-servers", action="store_true", help="List servers available to the linked account")
    group.add_argument("--channels", metavar="SERVER_ID", help="List channels and events of a server")
    dest_parser.add_argument("--event", help="Event id for --legacy")

    login_parser = subparsers.add_parser("login", help="Store a token issued by the web login")
    login_parser.add_argument("--token", required=True)
    subparsers.add_parser("logout", help="Forget the stored token")

    args = parser.parse_args(argv)
    if args.command == "status":
        _status()
        return
    if args.command == "destinations":
        _destinations(args)
        return
    if args.command == "login":
        _login(args.token)
        return
    if args.command == "logout":
        _logout()
        return
    _run(getattr(args, "signals", None))


if __name__ == "__main__":
    main()
