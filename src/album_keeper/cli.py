"""
Album Keeper CLI - Entry point

Runs the web backend and drives upload sessions against it.
"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from album_keeper.core.config import Config, load_config
from album_keeper.core.console import report, upload_progress
from album_keeper.core.database import get_database_path, init_database
from album_keeper.core.logging import setup_logging_from_config
from album_keeper.domain.archive.transport import UploadSource, get_mime_type
from album_keeper.domain.exceptions import AlbumKeeperError


def run_serve(config: Config, host: Optional[str], port: Optional[int], reload: bool) -> int:
    """Run the FastAPI backend with uvicorn."""
    import uvicorn

    uvicorn.run(
        "web.backend.main:app",
        host=host or config.web.host,
        port=port or config.web.port,
        reload=reload,
    )
    return 0


def run_init_db() -> int:
    init_database()
    report(f"Database ready at {get_database_path()}", "success")
    return 0


def _require_user(config: Config) -> bool:
    if not config.client.user_id:
        report("No user id configured. Set [client] user_id or ALBUM_KEEPER_USER_ID.", "error")
        return False
    return True


async def _credentials(config: Config, access_key: Optional[str], secret_key: Optional[str]) -> int:
    from album_keeper.domain.uploads.api_client import ApiClient

    async with ApiClient(config.client.api_base_url, config.client.user_id) as api:
        if access_key is None and secret_key is None:
            status = await api.credentials_status()
            if status.get("hasCredentials"):
                report(f"Archive credentials on file (access key {status['accessKey']})", "success")
            else:
                report("No archive credentials on file", "warning")
            return 0

        access_key = access_key or input("Access key: ")
        secret_key = secret_key or getpass.getpass("Secret key: ")
        await api.save_credentials(access_key, secret_key)
        report("Archive credentials saved", "success")
        return 0


async def _upload(
    config: Config,
    album_id: str,
    file_path: Path,
    title: Optional[str],
    artist: Optional[str],
    wait: bool,
) -> int:
    from album_keeper.domain.session import Session

    source = UploadSource.from_path(file_path)
    async with Session(config) as session:
        controller = await session.open_album(album_id)
        if not controller.can_edit:
            report("This album is read-only for you", "error")
            return 1

        with upload_progress() as progress:
            task = progress.add_task(f"Uploading {source.name}", total=100)
            result = await session.workflow.upload_track(
                album_id,
                source,
                title=title,
                artist=artist,
                controller=controller,
                token=session.token,
                on_stage=lambda stage: progress.update(
                    task, description=f"{stage.value.capitalize()} {source.name}"
                ),
                on_progress=lambda value: progress.update(task, completed=value),
            )

        if not result.ok:
            report(f"Upload failed: {result.error.message}", "error")
            if result.notification and result.notification.details:
                report(result.notification.details, "detail")
            return 1

        track = result.track
        report(f"Track #{track.track_number} '{track.title}' saved", "success")
        report(f"  {track.playback_url}", "detail")

        if wait:
            report("Waiting for the archive to finish processing...", "warning")
            await session.start_polling()
            if session.poller.pending:
                report("Stopped before the track was ready", "warning")
                return 1
            report("Track is ready to play", "success")
        return 0


async def _cover(config: Config, album_id: str, image_path: Path) -> int:
    from album_keeper.domain.session import Session

    async with Session(config) as session:
        cover_url = await session.workflow.upload_cover(
            album_id, image_path.read_bytes(), get_mime_type(image_path)
        )
    if cover_url is None:
        report("Cover upload failed", "error")
        return 1
    report("Cover updated", "success")
    return 0


async def _trash(config: Config) -> int:
    from album_keeper.domain.uploads.api_client import ApiClient

    async with ApiClient(config.client.api_base_url, config.client.user_id) as api:
        deleted = await api.list_trash()
    if not deleted:
        report("Trash is empty")
        return 0
    for album in deleted:
        report(
            f"{album['id']}  {album['title']} - {album['artist']}  "
            f"({len(album.get('tracks', []))} tracks, deleted {album['deletedAt']})"
        )
    return 0


async def _restore(config: Config, album_id: str) -> int:
    from album_keeper.domain.uploads.api_client import ApiClient

    async with ApiClient(config.client.api_base_url, config.client.user_id) as api:
        album = await api.restore_album(album_id)
    report(f"Restored '{album.title}'", "success")
    return 0


async def _saved(config: Config) -> int:
    from album_keeper.domain.uploads.api_client import ApiClient

    async with ApiClient(config.client.api_base_url, config.client.user_id) as api:
        albums = await api.list_saved_albums()
    if not albums:
        report("No saved albums")
        return 0
    for album in albums:
        report(f"{album.id}  {album.title} - {album.artist}  ({len(album.tracks)} tracks)")
    return 0


async def _save(config: Config, album_id: str, remove: bool) -> int:
    from album_keeper.domain.uploads.api_client import ApiClient

    async with ApiClient(config.client.api_base_url, config.client.user_id) as api:
        if remove:
            await api.unsave_album(album_id)
            report(f"Removed {album_id} from saved albums", "success")
        else:
            await api.save_album(album_id)
            report(f"Saved {album_id}", "success")
    return 0


async def _backfill(config: Config, album_id: str) -> int:
    from album_keeper.domain.session import Session

    async with Session(config) as session:
        controller = await session.open_album(album_id)
        saved = await session.backfiller.run(album_id, controller.tracks)
    report(f"Saved {len(saved)} duration(s)", "success")
    return 0


def main() -> None:
    """Main entry point for the album-keeper command."""
    parser = argparse.ArgumentParser(
        description="Album Keeper - music albums on the Internet Archive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the web backend")
    serve_parser.add_argument("--host", help="Bind address (default from config)")
    serve_parser.add_argument("--port", type=int, help="Port (default from config)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    subparsers.add_parser("init-db", help="Create or migrate the database")

    credentials_parser = subparsers.add_parser(
        "credentials", help="Show or store your archive S3 keys"
    )
    credentials_parser.add_argument("--access-key", help="Archive access key")
    credentials_parser.add_argument("--secret-key", help="Archive secret key")

    upload_parser = subparsers.add_parser("upload", help="Upload a track into an album")
    upload_parser.add_argument("album_id", help="Album to add the track to")
    upload_parser.add_argument("file", type=Path, help="Audio file")
    upload_parser.add_argument("--title", help="Track title (default: file name)")
    upload_parser.add_argument("--artist", help="Track artist (default: album artist)")
    upload_parser.add_argument(
        "--wait", action="store_true", help="Wait until the archive has processed the file"
    )

    cover_parser = subparsers.add_parser("cover", help="Set album cover art")
    cover_parser.add_argument("album_id", help="Album")
    cover_parser.add_argument("image", type=Path, help="Image file")

    subparsers.add_parser("trash", help="List recently deleted albums")

    restore_parser = subparsers.add_parser("restore", help="Restore a deleted album")
    restore_parser.add_argument("album_id", help="Album to restore")

    backfill_parser = subparsers.add_parser(
        "backfill-durations", help="Measure and save missing track durations"
    )
    backfill_parser.add_argument("album_id", help="Album")

    subparsers.add_parser("saved", help="List albums you saved")

    save_parser = subparsers.add_parser("save", help="Save a shared album")
    save_parser.add_argument("album_id", help="Album to save")

    unsave_parser = subparsers.add_parser("unsave", help="Remove a saved album")
    unsave_parser.add_argument("album_id", help="Album to remove")

    args = parser.parse_args()
    if not args.subcommand:
        parser.print_help()
        sys.exit(1)

    config = load_config()
    setup_logging_from_config(config.logging)

    if args.subcommand == "serve":
        sys.exit(run_serve(config, args.host, args.port, args.reload))
    if args.subcommand == "init-db":
        sys.exit(run_init_db())

    if not _require_user(config):
        sys.exit(1)

    if args.subcommand == "upload" and not args.file.is_file():
        report(f"File not found: {args.file}", "error")
        sys.exit(1)

    commands = {
        "credentials": lambda: _credentials(config, args.access_key, args.secret_key),
        "upload": lambda: _upload(
            config, args.album_id, args.file, args.title, args.artist, args.wait
        ),
        "cover": lambda: _cover(config, args.album_id, args.image),
        "trash": lambda: _trash(config),
        "restore": lambda: _restore(config, args.album_id),
        "backfill-durations": lambda: _backfill(config, args.album_id),
        "saved": lambda: _saved(config),
        "save": lambda: _save(config, args.album_id, remove=False),
        "unsave": lambda: _save(config, args.album_id, remove=True),
    }

    try:
        sys.exit(asyncio.run(commands[args.subcommand]()))
    except AlbumKeeperError as e:
        logger.error(f"{args.subcommand} failed: {e.message}")
        report(f"Error: {e.message}", "error")
        sys.exit(1)


if __name__ == "__main__":
    main()
