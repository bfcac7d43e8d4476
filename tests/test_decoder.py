"""Tests for EntryDecoder and level normalisation."""

import dataclasses

import pytest

from hatchlive.core.decoder import EntryDecoder, normalize_level, strip_data_prefix


class TestStripDataPrefix:
    @pytest.mark.parametrize("line,expected", [
        ('data: {"a":1}', '{"a":1}'),
        ('data:{"a":1}', '{"a":1}'),
        ('{"a":1}', '{"a":1}'),
        ("", None),
        ("   ", None),
        (": keep-alive", None),
        ("event: log", None),
        ("id: 7", None),
        ("retry: 3000", None),
        ("data: ", None),
    ])
    def test_prefix_handling(self, line, expected):
        assert strip_data_prefix(line) == expected


class TestNormalizeLevel:
    @pytest.mark.parametrize("raw,expected", [
        ("debug", "debug"),
        ("INFO", "info"),
        ("warn", "warn"),
        ("warning", "warn"),
        ("error", "error"),
        ("fatal", "error"),
        ("panic", "error"),
        ("trace", "debug"),
        ("verbose", "info"),
        (None, "info"),
        (3, "info"),
    ])
    def test_levels(self, raw, expected):
        assert normalize_level(raw) == expected


class TestDecode:
    def test_full_entry(self):
        d = EntryDecoder()
        e = d.decode('data: {"time":"2026-01-15T10:00:00Z","level":"warn","message":"slow upstream","project":"api","latency_ms":812}')
        assert e is not None
        assert e.id == 1
        assert e.timestamp == "2026-01-15T10:00:00Z"
        assert e.level == "warn"
        assert e.message == "slow upstream"
        assert dict(e.fields) == {"project": "api", "latency_ms": 812}

    def test_defaults_for_missing_keys(self):
        e = EntryDecoder().decode('data: {}')
        assert e is not None
        assert e.timestamp == ""
        assert e.level == "info"
        assert e.message == ""
        assert dict(e.fields) == {}

    def test_time_wins_over_timestamp(self):
        e = EntryDecoder().decode('data: {"time":"T1","timestamp":"T2"}')
        assert e.timestamp == "T1"
        assert "timestamp" not in e.fields
        assert "time" not in e.fields

    def test_timestamp_alias(self):
        e = EntryDecoder().decode('data: {"timestamp":"T2"}')
        assert e.timestamp == "T2"

    def test_null_time_falls_back_to_timestamp(self):
        e = EntryDecoder().decode('data: {"time":null,"timestamp":"T2"}')
        assert e.timestamp == "T2"

    def test_non_string_timestamp_kept_as_text(self):
        e = EntryDecoder().decode('data: {"time":1736935200}')
        assert e.timestamp == "1736935200"

    def test_nested_field_values_preserved(self):
        e = EntryDecoder().decode('data: {"message":"x","req":{"method":"GET","path":"/"},"tags":[1,2],"ok":true,"none":null}')
        assert e.fields["req"] == {"method": "GET", "path": "/"}
        assert e.fields["tags"] == [1, 2]
        assert e.fields["ok"] is True
        assert e.fields["none"] is None

    def test_line_without_prefix(self):
        e = EntryDecoder().decode('{"message":"bare"}')
        assert e.message == "bare"

    @pytest.mark.parametrize("line", [
        "data: {not json",
        "data: [1,2,3]",
        'data: "just a string"',
        "data: 42",
        "data: null",
    ])
    def test_malformed_lines_dropped(self, line):
        dropped = []
        d = EntryDecoder(on_drop=lambda l, reason: dropped.append((l, reason)))
        assert d.decode(line) is None
        assert len(dropped) == 1
        assert dropped[0][0] == line

    @pytest.mark.parametrize("line", ["", ": ping", "event: log", "id: 12"])
    def test_non_payload_lines_are_not_counted_as_drops(self, line):
        dropped = []
        d = EntryDecoder(on_drop=lambda l, reason: dropped.append(l))
        assert d.decode(line) is None
        assert dropped == []

    def test_ids_only_consumed_by_valid_lines(self):
        d = EntryDecoder()
        a = d.decode('data: {"message":"a"}')
        assert d.decode("data: {broken") is None
        b = d.decode('data: {"message":"b"}')
        assert (a.id, b.id) == (1, 2)
        assert d.last_id == 2

    def test_start_id(self):
        d = EntryDecoder(start_id=41)
        assert d.decode('data: {}').id == 42

    def test_entry_is_immutable(self):
        e = EntryDecoder().decode('data: {"message":"m","k":"v"}')
        with pytest.raises(dataclasses.FrozenInstanceError):
            e.message = "changed"
        with pytest.raises(TypeError):
            e.fields["k"] = "changed"
