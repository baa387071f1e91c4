"""
Backup Module

Import and export of ledger snapshots as JSON files.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional, Union

from .exceptions import InvalidFormatError
from .ledger import LedgerStore

DEFAULT_BACKUP_PREFIX = "shiwallet-backup"


def backup_filename(today: Optional[date] = None, prefix: str = DEFAULT_BACKUP_PREFIX) -> str:
    """Default export file name, e.g. shiwallet-backup-2024-10-19.json"""
    today = today or date.today()
    return f"{prefix}-{today.isoformat()}.json"


def export_to_file(store: LedgerStore, path: Union[str, Path]) -> Path:
    """Write the store's snapshot to a pretty-printed JSON file"""
    path = Path(path)
    path.write_text(json.dumps(store.export_snapshot(), indent=2), encoding="utf-8")
    return path


def import_from_file(store: LedgerStore, path: Union[str, Path]) -> None:
    """
    Replace the store's state with the snapshot in a JSON file

    Raises:
        InvalidFormatError: If the file is not JSON or not a valid snapshot
        OSError: If the file cannot be read
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except ValueError as e:
        raise InvalidFormatError(f"Invalid file format: {e}") from e
    store.import_snapshot(data)
