import json
import os
import tempfile

from core.utils import safe_json_write


def _load(path):
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


class TestSafeJsonWrite:
    """Test suite for atomic JSON persistence."""

    def test_write_keeps_unicode(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "data.json")
            assert safe_json_write(path, {"label": "💰 USDFC"})
            assert _load(path) == {"label": "💰 USDFC"}
            assert not os.path.exists(path + ".tmp")

    def test_creates_missing_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "reports", "run.json")
            assert safe_json_write(path, {"passed": 3})
            assert _load(path) == {"passed": 3}

    def test_previous_file_becomes_backup(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "data.json")
            safe_json_write(path, {"run": 1})
            safe_json_write(path, {"run": 2})
            safe_json_write(path, {"run": 3})
            assert _load(path + ".backup.1") == {"run": 2}
            assert _load(path + ".backup.2") == {"run": 1}

    def test_backup_generations_are_bounded(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "data.json")
            for run in range(1, 5):
                safe_json_write(path, {"run": run}, max_backups=2)
            assert _load(path + ".backup.2") == {"run": 2}
            assert not os.path.exists(path + ".backup.3")

    def test_unserialisable_data_leaves_file_untouched(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "data.json")
            safe_json_write(path, {"ok": True})
            assert not safe_json_write(path, {"bad": object()})
            assert _load(path) == {"ok": True}
            assert not os.path.exists(path + ".tmp")
