"""
Tests for ReadingBridge: ingest, substitution, persist and cold-start render.
"""

import json
import threading

import pytest

from airgradient_bridge.errors import MalformedInput
from airgradient_bridge.models import Reading
from airgradient_bridge.services import parse_instance_id, substitute_invalid


def body(**fields) -> bytes:
    return json.dumps(fields).encode()


# =============================================================================
# Instance id
# =============================================================================


class TestParseInstanceId:

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("abc:sensor7", "sensor7"),
            ("airgradient:a1b2c3", "a1b2c3"),
            ("sensor7", "null"),
            ("a:b:c", "null"),
            ("abc:", "null"),
            ("", "null"),
            (None, "null"),
        ],
    )
    def test_tokens(self, token, expected):
        assert parse_instance_id(token) == expected


# =============================================================================
# Substitution
# =============================================================================


class TestSubstituteInvalid:

    def test_valid_values_kept(self):
        reading = Reading(pm25=5, co2=700)
        assert substitute_invalid(reading, Reading(pm25=1, co2=1)) is reading

    def test_uses_previous_values(self):
        result = substitute_invalid(Reading(pm25=0, co2=-1), Reading(pm25=12, co2=800))
        assert (result.pm25, result.co2) == (12, 800)

    def test_fields_independent(self):
        result = substitute_invalid(Reading(pm25=-3, co2=650), Reading(pm25=12, co2=800))
        assert (result.pm25, result.co2) == (12, 650)

    def test_no_previous_means_zero(self):
        result = substitute_invalid(Reading(pm25=-3, co2=0), None)
        assert (result.pm25, result.co2) == (0, 0)


# =============================================================================
# Ingest
# =============================================================================


class TestIngest:

    def test_commits_reading(self, bridge, clock):
        reading = bridge.ingest(body(wifi=-73, pm02=297, rco2=1009, atmp=26.1, rhum=51), "ag:s1")

        assert reading.instance_id == "s1"
        assert reading.timestamp == clock.now
        assert reading.pm25 == 297
        assert bridge.cache.get() == reading

    def test_timestamp_is_server_time(self, bridge, clock):
        reading = bridge.ingest(body(pm02=1, ts=5), "ag:s1")
        assert reading.timestamp == clock.now

    def test_non_positive_pm25_uses_previous(self, bridge):
        bridge.ingest(body(pm02=42, rco2=900), "ag:s1")
        reading = bridge.ingest(body(pm02=0, rco2=950), "ag:s1")
        assert reading.pm25 == 42
        assert reading.co2 == 950

    def test_non_positive_co2_uses_previous(self, bridge):
        bridge.ingest(body(pm02=42, rco2=900), "ag:s1")
        reading = bridge.ingest(body(pm02=43, rco2=-1), "ag:s1")
        assert reading.pm25 == 43
        assert reading.co2 == 900

    def test_first_ingest_without_previous(self, bridge):
        reading = bridge.ingest(body(pm02=-1, rco2=0, wifi=-40), "ag:s1")
        assert (reading.pm25, reading.co2, reading.wifi) == (0, 0, -40)

    def test_malformed_leaves_cache_alone(self, bridge):
        good = bridge.ingest(body(pm02=10, rco2=500), "ag:s1")
        with pytest.raises(MalformedInput):
            bridge.ingest(b"not json", "ag:s1")
        assert bridge.cache.get() == good

    def test_ingest_does_not_write_backup(self, bridge, backup_path):
        bridge.ingest(body(pm02=10), "ag:s1")
        assert not backup_path.exists()


class TestPersist:

    def test_writes_backup(self, bridge, backup):
        reading = bridge.ingest(body(pm02=10, rco2=500), "ag:s1")
        bridge.persist(reading)
        assert backup.load() == reading

    def test_failure_is_logged_not_raised(self, bridge, tmp_path, caplog):
        bridge.backup.path = tmp_path / "missing-dir" / "backup.json"
        bridge.persist(Reading())
        assert "Failed to write backup" in caplog.text


# =============================================================================
# Render / cold start
# =============================================================================


class TestSnapshot:

    def test_cached_reading_wins(self, bridge, backup, clock):
        backup.save(Reading(instance_id="old", timestamp=clock.now, pm25=1))
        bridge.ingest(body(pm02=99), "ag:new")
        assert bridge.snapshot().instance_id == "new"

    def test_cold_start_restores_recent_backup(self, bridge, backup, clock):
        backup.save(Reading(instance_id="s1", timestamp=clock.now - 30, pm25=15, co2=700))
        snapshot = bridge.snapshot()
        assert (snapshot.instance_id, snapshot.pm25, snapshot.co2) == ("s1", 15, 700)

    def test_cold_start_ignores_stale_backup(self, bridge, backup, clock):
        backup.save(Reading(instance_id="s1", timestamp=clock.now - 90, pm25=15, co2=700))
        assert bridge.snapshot() == Reading()

    def test_cold_start_without_backup(self, bridge):
        assert bridge.snapshot() == Reading()

    def test_restore_is_not_cached(self, bridge, backup, clock):
        backup.save(Reading(timestamp=clock.now - 30, pm25=15))
        assert bridge.snapshot().pm25 == 15
        assert bridge.cache.get() is None

        # still cold: the backup ages out on a later render
        clock.now += 60
        assert bridge.snapshot() == Reading()

    def test_render_is_idempotent(self, bridge):
        bridge.ingest(body(wifi=-60, pm02=8, rco2=600, atmp=20.5, rhum=33), "ag:s1")
        assert bridge.render() == bridge.render()


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrency:

    def test_no_torn_readings(self, bridge):
        # Every field of a reading from instance "a" is 10, from "b" it's 20.
        # A reader must never see a mix.
        values = {"a": 10, "b": 20}
        errors = []
        stop = threading.Event()

        def writer(instance):
            v = values[instance]
            payload = body(wifi=v, pm02=v, rco2=v, atmp=float(v), rhum=v)
            for _ in range(300):
                bridge.ingest(payload, f"ag:{instance}")

        def reader():
            while not stop.is_set():
                snap = bridge.snapshot()
                if snap.instance_id == "null":
                    continue
                v = values[snap.instance_id]
                fields = (snap.wifi, snap.pm25, snap.co2, snap.temperature, snap.humidity)
                if fields != (v, v, v, float(v), v):
                    errors.append(snap)

        readers = [threading.Thread(target=reader) for _ in range(3)]
        writers = [threading.Thread(target=writer, args=(i,)) for i in ("a", "b")]
        for t in readers + writers:
            t.start()
        for t in writers:
            t.join()
        stop.set()
        for t in readers:
            t.join()

        assert errors == []
