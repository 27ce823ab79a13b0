from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import ClassVar

from botocore.exceptions import ClientError

from .models import utc_now_iso
from .registry import PlayerRegistry

log = logging.getLogger(__name__)


class SnapshotStorage:
    """Player snapshots in a DynamoDB table keyed per session."""

    PK_TEMPLATE: ClassVar[str] = "SESSION#%s"
    SK_VALUE: ClassVar[str] = "SNAPSHOT"

    def __init__(self, table) -> None:
        self._table = table

    @classmethod
    def key(cls, session_id: str) -> dict[str, str]:
        return {"pk": cls.PK_TEMPLATE % session_id, "sk": cls.SK_VALUE}

    def ensure_table(self) -> None:
        if self._table is None:
            raise RuntimeError("Snapshot table is not configured")

    def save_snapshot(self, session_id: str, registry: PlayerRegistry) -> None:
        self.ensure_table()
        item = self.key(session_id)
        item.update(
            {
                "snapshot": json.dumps(registry.snapshot()),
                "updated_at": utc_now_iso(),
            }
        )
        self._table.put_item(Item=item)

    def get_snapshot(self, session_id: str) -> PlayerRegistry | None:
        self.ensure_table()
        resp = self._table.get_item(Key=self.key(session_id))
        item = resp.get("Item")
        if not item:
            return None
        return PlayerRegistry.from_snapshot(json.loads(str(item["snapshot"])))

    def delete_snapshot(self, session_id: str) -> bool:
        self.ensure_table()
        try:
            self._table.delete_item(
                Key=self.key(session_id),
                ConditionExpression="attribute_exists(pk)",
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "ConditionalCheckFailedException":
                return False
            raise
        return True


def write_snapshot_file(path: Path | str, registry: PlayerRegistry) -> None:
    target = Path(path)
    target.write_text(json.dumps(registry.snapshot(), indent=2), encoding="utf-8")


def read_snapshot_file(path: Path | str) -> PlayerRegistry:
    source = Path(path)
    if not source.exists():
        log.warning("Snapshot file %s not found; starting empty", source)
        return PlayerRegistry()
    return PlayerRegistry.from_snapshot(json.loads(source.read_text(encoding="utf-8")))


__all__ = ["SnapshotStorage", "write_snapshot_file", "read_snapshot_file"]
