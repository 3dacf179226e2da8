import json
import threading

import pytest

from chat_relay.message_log import MessageLog
from tests.helpers import write_messages


class TestLoad:

    def test_missing_file_gives_empty_log(self, messages_file):
        log = MessageLog.load(str(messages_file))
        assert log.snapshot() == []
        assert log.path == str(messages_file)

    def test_loads_existing_messages_in_order(self, messages_file):
        write_messages(messages_file, ["a", "b", "c"])
        assert MessageLog.load(str(messages_file)).snapshot() == ["a", "b", "c"]

    def test_malformed_file_gives_empty_log(self, messages_file):
        messages_file.write_text("[\"a\", ", encoding="utf-8")
        assert MessageLog.load(str(messages_file)).snapshot() == []

    def test_non_array_file_gives_empty_log(self, messages_file):
        write_messages(messages_file, {"messages": ["a"]})
        assert MessageLog.load(str(messages_file)).snapshot() == []


class TestAppend:

    def test_append_returns_position(self):
        log = MessageLog()
        assert log.append("first") == 1
        assert log.append("second") == 2
        assert len(log) == 2

    def test_stores_payload_verbatim(self):
        log = MessageLog()
        payload = '  {"not": "parsed"}  '
        log.append(payload)
        assert log.snapshot() == [payload]

    def test_snapshot_is_a_copy(self):
        log = MessageLog(messages=["a"])
        snap = log.snapshot()
        snap.append("b")
        assert log.snapshot() == ["a"]

    def test_concurrent_appends_lose_nothing(self):
        """Each writer's messages appear once and in that writer's order"""
        log = MessageLog()
        writers, per_writer = 8, 500

        def write(n):
            for i in range(per_writer):
                log.append(f"{n}:{i}")

        threads = [threading.Thread(target=write, args=(n,)) for n in range(writers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        entries = log.snapshot()
        assert len(entries) == writers * per_writer
        assert len(set(entries)) == len(entries)
        for n in range(writers):
            mine = [int(e.split(":")[1]) for e in entries if e.startswith(f"{n}:")]
            assert mine == list(range(per_writer))


class TestFlush:

    def test_round_trip(self, messages_file):
        log = MessageLog(str(messages_file))
        for m in ["a", "b", "c"]:
            log.append(m)
        log.flush()

        assert json.loads(messages_file.read_text(encoding="utf-8")) == ["a", "b", "c"]
        assert MessageLog.load(str(messages_file)).snapshot() == ["a", "b", "c"]

    def test_flush_overwrites_whole_file(self, messages_file):
        write_messages(messages_file, ["old", "older", "oldest"])
        log = MessageLog(str(messages_file), ["new"])
        log.flush()
        assert json.loads(messages_file.read_text(encoding="utf-8")) == ["new"]

    def test_flush_leaves_no_temp_files(self, tmp_path, messages_file):
        MessageLog(str(messages_file), ["a"]).flush()
        assert [p.name for p in tmp_path.iterdir()] == ["messages.json"]

    def test_failed_flush_keeps_previous_file(self, tmp_path, messages_file, monkeypatch):
        write_messages(messages_file, ["kept"])

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("chat_relay.message_log.os.replace", boom)
        with pytest.raises(OSError):
            MessageLog(str(messages_file), ["lost"]).flush()

        assert json.loads(messages_file.read_text(encoding="utf-8")) == ["kept"]
        assert [p.name for p in tmp_path.iterdir()] == ["messages.json"]

    def test_flush_without_path_raises(self):
        with pytest.raises(ValueError):
            MessageLog().flush()
