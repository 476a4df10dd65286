from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from .ledger import Ledger
from .models import AppSettings, LogEntry

logger = logging.getLogger(__name__)


def export_backup(ledger: Ledger) -> dict[str, Any]:
    return {
        "logs": [entry.to_document() for entry in ledger.logs()],
        "settings": ledger.settings().to_document(),
        "tags": ledger.tags(),
    }


def export_backup_json(ledger: Ledger) -> str:
    return json.dumps(export_backup(ledger), indent=2)


def restore_backup(ledger: Ledger, document: str | bytes | Mapping[str, Any]) -> bool:
    """Replace persisted state with the contents of a backup document.

    ``logs`` is mandatory; ``settings`` and ``tags`` are restored only when
    present. The whole document is validated before anything is written,
    so a rejected document leaves the ledger untouched.
    """
    try:
        data = json.loads(document) if isinstance(document, (str, bytes)) else document
        if not isinstance(data, Mapping):
            raise ValueError("Backup document must be a JSON object")
        if data.get("logs") is None:
            raise ValueError("Invalid backup format: missing 'logs'")
        if not isinstance(data["logs"], list):
            raise ValueError("Invalid backup format: 'logs' must be a list")

        entries = [LogEntry.from_document(item) for item in data["logs"]]

        settings = None
        if data.get("settings"):
            settings = AppSettings.from_document(data["settings"])

        tags = None
        if data.get("tags") is not None:
            if not isinstance(data["tags"], list):
                raise ValueError("Invalid backup format: 'tags' must be a list")
            tags = [str(tag) for tag in data["tags"]]
    except (TypeError, ValueError) as exc:
        logger.error("Restore failed: %s", exc)
        return False

    restored = ledger.replace_logs(entries)
    if settings is not None:
        restored = ledger.save_settings(settings) and restored
    if tags is not None:
        restored = ledger.save_tags(tags) and restored

    logger.info("Restored %d entries from backup", len(entries))
    return restored
