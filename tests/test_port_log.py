"""
PortActivityLog persistence.
"""

import json
import os
import stat
import threading
from unittest.mock import patch

import pytest

from aruba1830.errors import PortLogReadError, PortLogWriteError
from aruba1830.port_log import _NEW_FILE_MODE, PortActivityLog


class TestRecord:
    def test_record_writes_sorted_json(self, tmp_path):
        path = tmp_path / "ports.json"
        log = PortActivityLog(path)

        log.record("3", ["AA:BB:CC:11:22:44", "aa-bb-cc-11-22-33"])

        assert json.loads(path.read_text(encoding="utf-8")) == {
            "3": ["aa:bb:cc:11:22:33", "aa:bb:cc:11:22:44"]
        }

    def test_record_replaces_previous_set(self, port_log):
        port_log.record("3", ["aa:bb:cc:11:22:33"])
        port_log.record("3", ["aa:bb:cc:11:22:44"])

        assert port_log.snapshot() == {"3": ["aa:bb:cc:11:22:44"]}

    def test_record_empty_removes_port_and_file(self, port_log):
        port_log.record("3", ["aa:bb:cc:11:22:33"])
        port_log.record("3", [])

        assert port_log.snapshot() == {}
        assert not port_log.path.exists()

    def test_no_temp_files_left(self, port_log, tmp_path):
        port_log.record("1", ["aa:bb:cc:11:22:33"])
        port_log.record("2", ["aa:bb:cc:11:22:44"])

        assert [p.name for p in tmp_path.iterdir()] == ["ports.json"]


class TestRemove:
    def test_remove_port(self, port_log):
        port_log.record("3", ["aa:bb:cc:11:22:33"])
        port_log.record("4", ["aa:bb:cc:11:22:44"])

        port_log.remove_port("3")

        assert port_log.snapshot() == {"4": ["aa:bb:cc:11:22:44"]}

    def test_remove_only_port_deletes_file(self, port_log):
        port_log.record("3", ["aa:bb:cc:11:22:33"])
        assert port_log.path.exists()

        port_log.remove_port("3")

        assert port_log.snapshot() == {}
        assert not port_log.path.exists()

    def test_remove_unknown_port_is_noop(self, port_log):
        port_log.remove_port("9")

        assert port_log.snapshot() == {}

    def test_remove_last_mac_drops_port(self, port_log):
        port_log.record("3", ["aa:bb:cc:11:22:33", "aa:bb:cc:11:22:44"])

        port_log.remove_mac("AA:BB:CC:11:22:33", "3")
        assert port_log.snapshot() == {"3": ["aa:bb:cc:11:22:44"]}

        port_log.remove_mac("aa:bb:cc:11:22:44", "3")
        assert port_log.snapshot() == {}
        assert not port_log.path.exists()


class TestLookup:
    def test_port_for_mac(self, port_log):
        port_log.record("5", ["aa:bb:cc:11:22:33"])

        assert port_log.port_for_mac("AA-BB-CC-11-22-33") == "5"
        assert port_log.port_for_mac("aa:bb:cc:11:22:99") is None

    def test_duplicate_mac_lowest_port_wins(self, port_log):
        port_log.record("7", ["aa:bb:cc:11:22:33"])
        port_log.record("12", ["aa:bb:cc:11:22:33"])

        # string order
        assert port_log.port_for_mac("aa:bb:cc:11:22:33") == "12"


class TestLoad:
    def test_reload_from_disk(self, tmp_path):
        path = tmp_path / "ports.json"
        PortActivityLog(path).record("3", ["aa:bb:cc:11:22:33"])

        reloaded = PortActivityLog(path)

        assert reloaded.port_for_mac("aa:bb:cc:11:22:33") == "3"

    def test_missing_file_is_empty(self, tmp_path):
        log = PortActivityLog(tmp_path / "missing.json")
        log.load()

        assert log.snapshot() == {}

    def test_empty_ports_are_dropped(self, tmp_path):
        path = tmp_path / "ports.json"
        path.write_text('{"3": [], "4": ["AA:BB:CC:11:22:33"]}', encoding="utf-8")

        assert PortActivityLog(path).snapshot() == {"4": ["aa:bb:cc:11:22:33"]}

    @pytest.mark.parametrize("content", ["{not json", '["3"]', '{"3": "aa:bb:cc:11:22:33"}', '{"3": [1]}'])
    def test_corrupt_file_raises_then_is_overwritten(self, tmp_path, content):
        path = tmp_path / "ports.json"
        path.write_text(content, encoding="utf-8")
        log = PortActivityLog(path)

        with pytest.raises(PortLogReadError):
            log.load()

        # Loaded as empty; the next write replaces the broken file.
        log.record("1", ["aa:bb:cc:11:22:33"])
        assert json.loads(path.read_text(encoding="utf-8")) == {"1": ["aa:bb:cc:11:22:33"]}

    def test_write_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        log = PortActivityLog(blocker / "ports.json")

        with pytest.raises(PortLogWriteError):
            log.record("1", ["aa:bb:cc:11:22:33"])


def test_concurrent_records(port_log):
    def worker(n):
        port_log.record(str(n), [f"aa:bb:cc:11:22:{n:02x}"])

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(1, 21)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(port_log.snapshot()) == 20


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
class TestFileMode:
    def test_new_file_follows_umask(self, port_log):
        port_log.record("1", ["aa:bb:cc:11:22:33"])

        assert stat.S_IMODE(port_log.path.stat().st_mode) == _NEW_FILE_MODE

    def test_existing_mode_is_kept(self, port_log):
        port_log.record("1", ["aa:bb:cc:11:22:33"])
        os.chmod(port_log.path, 0o640)

        port_log.record("2", ["aa:bb:cc:11:22:44"])

        assert stat.S_IMODE(port_log.path.stat().st_mode) == 0o640


def test_data_is_synced_before_rename(port_log):
    calls = []
    real_fsync, real_replace = os.fsync, os.replace

    def fsync(fd):
        calls.append("fsync")
        real_fsync(fd)

    def replace(src, dst):
        calls.append("replace")
        real_replace(src, dst)

    with patch("aruba1830.port_log.os.fsync", side_effect=fsync), \
            patch("aruba1830.port_log.os.replace", side_effect=replace):
        port_log.record("1", ["aa:bb:cc:11:22:33"])

    assert calls == ["fsync", "replace"]
