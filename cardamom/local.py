"""Local contact store."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from .errors import LocalError
from .model import LocalCard

CARD_SUFFIX = ".vcf"


def read_cards(sync_dir: Path) -> dict[str, LocalCard]:
    """List the cards stored in the sync directory.

    Args:
        sync_dir: Sync directory

    Returns:
        Cards keyed by file stem, with their modification time in UTC

    Raises:
        LocalError: If the directory cannot be listed
    """
    try:
        entries = list(Path(sync_dir).iterdir())
    except OSError as e:
        raise LocalError(f"Could not read cards from sync dir {sync_dir}") from e

    cards: dict[str, LocalCard] = {}
    for entry in entries:
        if entry.suffix != CARD_SUFFIX or not entry.stem:
            continue
        try:
            if not entry.is_file():
                continue
            mtime = entry.stat().st_mtime
        except OSError:
            # Removed while listing
            continue
        cards[entry.stem] = LocalCard(
            name=entry.stem, date=datetime.fromtimestamp(mtime, tz=UTC)
        )
    return cards
