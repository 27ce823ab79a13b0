import json

import pytest
from botocore.exceptions import ClientError

from hockey_bot.registry import PlayerRegistry
from hockey_bot.storage import SnapshotStorage, read_snapshot_file, write_snapshot_file


class FakeTable:
    def __init__(self) -> None:
        self.items: dict[tuple[str, str], dict[str, object]] = {}

    def get_item(self, *, Key):
        return {"Item": self.items.get((Key["pk"], Key["sk"]))}

    def put_item(self, *, Item):
        self.items[(Item["pk"], Item["sk"])] = Item

    def delete_item(self, *, Key, ConditionExpression):
        del ConditionExpression  # pragma: no cover - unused in fake implementation
        item_key = (Key["pk"], Key["sk"])
        if item_key not in self.items:
            raise ClientError(
                {
                    "Error": {
                        "Code": "ConditionalCheckFailedException",
                        "Message": "Item not found",
                    }
                },
                "DeleteItem",
            )
        self.items.pop(item_key)


class BrokenTable(FakeTable):
    def delete_item(self, *, Key, ConditionExpression):
        raise ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow"}},
            "DeleteItem",
        )


def make_registry() -> PlayerRegistry:
    registry = PlayerRegistry()
    registry.ensure("1", "Alpha").rating = 1040
    registry.ensure("2", "Bravo")
    registry.debit("2", 300)
    return registry


def test_save_and_get_snapshot_round_trip():
    table = FakeTable()
    storage = SnapshotStorage(table)

    storage.save_snapshot("rink", make_registry())

    item = table.items[("SESSION#rink", "SNAPSHOT")]
    assert json.loads(item["snapshot"])["players"][0]["name"] == "Alpha"
    assert item["updated_at"].endswith("Z")

    restored = storage.get_snapshot("rink")
    assert restored is not None
    assert restored.rating_of("1") == 1040
    assert restored.balance("2") == 700


def test_get_missing_snapshot_returns_none():
    storage = SnapshotStorage(FakeTable())

    assert storage.get_snapshot("nowhere") is None


def test_delete_snapshot_reports_missing_items():
    table = FakeTable()
    storage = SnapshotStorage(table)
    storage.save_snapshot("rink", make_registry())

    assert storage.delete_snapshot("rink") is True
    assert storage.delete_snapshot("rink") is False


def test_delete_snapshot_propagates_other_errors():
    storage = SnapshotStorage(BrokenTable())

    with pytest.raises(ClientError):
        storage.delete_snapshot("rink")


def test_unconfigured_table_raises():
    storage = SnapshotStorage(None)

    with pytest.raises(RuntimeError):
        storage.save_snapshot("rink", PlayerRegistry())


def test_snapshot_file_helpers(tmp_path):
    path = tmp_path / "players.json"

    assert len(read_snapshot_file(path)) == 0

    write_snapshot_file(path, make_registry())
    restored = read_snapshot_file(path)

    assert restored.get("1").name == "Alpha"
    assert restored.balance("2") == 700
