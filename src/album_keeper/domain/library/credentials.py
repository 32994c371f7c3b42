"""Per-user archive credentials storage."""

from typing import Optional

from loguru import logger

from album_keeper.core.database import utc_now_iso
from album_keeper.domain.exceptions import InvalidRequestError
from album_keeper.domain.models import ArchiveCredentials


def get_credentials(conn, user_id: str) -> Optional[ArchiveCredentials]:
    cursor = conn.execute(
        "SELECT access_key, secret_key FROM archive_credentials WHERE user_id = ?",
        (user_id,),
    )
    row = cursor.fetchone()
    if not row:
        return None
    return ArchiveCredentials(access_key=row["access_key"], secret_key=row["secret_key"])


def save_credentials(
    conn, user_id: str, access_key: Optional[str], secret_key: Optional[str]
) -> ArchiveCredentials:
    """Insert or replace the caller's keys (whitespace trimmed).

    Raises:
        InvalidRequestError: Either key is empty after trimming
    """
    credentials = ArchiveCredentials.cleaned(access_key or "", secret_key or "")
    if not credentials.access_key or not credentials.secret_key:
        raise InvalidRequestError("Invalid credentials")

    conn.execute(
        """
        INSERT INTO archive_credentials (user_id, access_key, secret_key, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(user_id) DO UPDATE SET
            access_key = excluded.access_key,
            secret_key = excluded.secret_key,
            updated_at = excluded.updated_at
    """,
        (user_id, credentials.access_key, credentials.secret_key, utc_now_iso()),
    )
    conn.commit()
    logger.info(
        f"Saved archive credentials for {user_id} (access key length {len(credentials.access_key)})"
    )
    return credentials


def delete_credentials(conn, user_id: str) -> bool:
    cursor = conn.execute("DELETE FROM archive_credentials WHERE user_id = ?", (user_id,))
    conn.commit()
    return cursor.rowcount > 0
