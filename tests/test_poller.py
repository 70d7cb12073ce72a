import threading
import time

import pytest

from activestreams_bridge.models.camera import DeviceRegistry, VIDEO_CAMERA
from activestreams_bridge.services.poller import StreamPoller, parse_active_clients
from activestreams_bridge.services.settings import AdaptiveStreamingSettings, TrackingSettings

from conftest import FakeAdaptiveSettings, active_streams, connection


def state_messages(broker):
    """Published state values, discovery and detail topics left out"""
    return {
        topic: payload
        for topic, payload, _ in broker.messages
        if not topic.startswith("homeassistant/") and not topic.endswith("/info")
    }


def test_front_door_cycle_publishes_expected_facts(front_door_poller, broker):
    assert front_door_poller.run_cycle() is True

    states = state_messages(broker)
    assert states["ns/activeStreams/cam1/Alice"] is True
    assert states["ns/activeStreams/cam1"] == 1
    assert states["ns/activeStreams/Alice"] == 1
    assert states["ns/activeStreams"] == 1

    details = broker.payloads()
    assert details["ns/activeStreams/cam1/Alice/info"] == (
        '{"streams": [{"camera": "Front Door", "ip": "192.168.1.10"}]}'
    )
    assert front_door_poller.announcer.published is True


def test_identical_cycle_publishes_nothing(front_door_poller, broker):
    front_door_poller.run_cycle()
    broker.clear()

    assert front_door_poller.run_cycle() is True
    assert broker.messages == []


def test_change_is_republished(front_door_poller, broker):
    front_door_poller.run_cycle()
    broker.clear()

    front_door_poller.adaptive_settings.update_from_payload(
        '[{"group": "Front Door", "subgroup": "Summary", "key": "activeStreams",'
        ' "title": "Active Streams", "value": 0}]'
    )
    front_door_poller.run_cycle()

    assert state_messages(broker) == {
        "ns/activeStreams/cam1/Alice": False,
        "ns/activeStreams/cam1": 0,
        "ns/activeStreams/Alice": 0,
        "ns/activeStreams": 0,
    }


def test_global_total_includes_cameras_outside_whitelist(broker):
    registry = DeviceRegistry()
    registry.register("cam1", "Front Door", [VIDEO_CAMERA])
    registry.register("cam2", "Garage", [VIDEO_CAMERA])
    adaptive = FakeAdaptiveSettings([
        active_streams("Front Door", 1),
        connection("Front Door", "192.168.1.10"),
        active_streams("Garage", 2),
        connection("Garage", "192.168.1.11"),
        connection("Garage", "10.0.0.3"),
    ])
    tracking = TrackingSettings(cameras=["cam1"], entities={"Alice": ["192.168.1"]})
    poller = StreamPoller(registry, adaptive, tracking, broker, namespace="ns")

    poller.run_cycle()

    states = state_messages(broker)
    assert states["ns/activeStreams"] == 3
    assert states["ns/activeStreams/Alice"] == 2
    assert "ns/activeStreams/cam2" not in states
    assert "ns/activeStreams/cam2/Alice" not in states
    assert adaptive.calls == 1

    global_detail = broker.payloads()["ns/activeStreams/info"]
    assert global_detail.count('"ip"') == 3


def test_devices_without_video_capability_are_ignored(broker):
    registry = DeviceRegistry()
    registry.register("hub", "Hub", ["Settings"])
    adaptive = FakeAdaptiveSettings([active_streams("Hub", 4)])
    tracking = TrackingSettings(cameras=["hub"], entities={})
    poller = StreamPoller(registry, adaptive, tracking, broker, namespace="ns")

    poller.run_cycle()

    assert state_messages(broker) == {"ns/activeStreams": 0}


def test_malformed_active_streams_value_counts_as_zero(broker, registry):
    adaptive = FakeAdaptiveSettings([active_streams("Front Door", "lots")])
    tracking = TrackingSettings(cameras=["cam1"], entities={})
    poller = StreamPoller(registry, adaptive, tracking, broker, namespace="ns")

    assert poller.run_cycle() is True
    assert state_messages(broker)["ns/activeStreams/cam1"] == 0


def test_entity_without_ips_is_inactive(broker, registry):
    adaptive = FakeAdaptiveSettings([connection("Front Door", "192.168.1.10")])
    tracking = TrackingSettings(cameras=["cam1"], entities={"Bob": []})
    poller = StreamPoller(registry, adaptive, tracking, broker, namespace="ns")

    poller.run_cycle()

    states = state_messages(broker)
    assert states["ns/activeStreams/cam1/Bob"] is False
    assert states["ns/activeStreams/Bob"] == 0


def test_collaborator_failure_is_contained(broker, registry):
    adaptive = AdaptiveStreamingSettings()
    tracking = TrackingSettings(cameras=["cam1"], entities={"Alice": ["192.168.1"]})
    poller = StreamPoller(registry, adaptive, tracking, broker, namespace="ns")

    assert poller.run_cycle() is False
    assert "No adaptive streaming settings" in poller.last_error
    assert broker.messages == []
    assert poller.is_running is False

    adaptive.update_from_payload('[]')
    assert poller.run_cycle() is True
    assert poller.last_error is None
    assert poller.cycles == 2


def test_failed_publish_is_retried_next_cycle(front_door_poller, broker):
    broker.fail_topics.add("ns/activeStreams/cam1")
    front_door_poller.run_cycle()
    assert "ns/activeStreams/cam1" not in state_messages(broker)

    broker.fail_topics.clear()
    broker.clear()
    front_door_poller.run_cycle()

    assert state_messages(broker) == {"ns/activeStreams/cam1": 1}


def test_failed_discovery_is_retried_next_cycle(front_door_poller, broker):
    broker.fail_topics.add("homeassistant/sensor/ns/activeStreams/config")

    assert front_door_poller.run_cycle() is False
    assert front_door_poller.announcer.published is False

    broker.fail_topics.clear()
    assert front_door_poller.run_cycle() is True
    assert front_door_poller.announcer.published is True


def test_tick_during_running_cycle_is_dropped(front_door_poller, broker):
    front_door_poller._cycle_lock.acquire()
    try:
        assert front_door_poller.status()["state"] == "running"
        assert front_door_poller.tick() is False
        assert front_door_poller.run_cycle() is False
    finally:
        front_door_poller._cycle_lock.release()

    assert front_door_poller.dropped_ticks == 2
    assert broker.messages == []
    assert front_door_poller.status()["state"] == "idle"


def test_slow_cycle_does_not_overlap(broker, registry):
    release = threading.Event()
    entered = threading.Event()

    class SlowSettings:
        def get_settings(self):
            entered.set()
            release.wait(2)
            return []

    tracking = TrackingSettings(cameras=["cam1"], entities={})
    poller = StreamPoller(registry, SlowSettings(), tracking, broker, namespace="ns")

    worker = threading.Thread(target=poller.run_cycle)
    worker.start()
    assert entered.wait(2)

    assert poller.run_cycle() is False
    release.set()
    worker.join(2)

    assert poller.cycles == 1
    assert poller.dropped_ticks == 1


def test_concurrent_drops_are_all_counted(front_door_poller):
    front_door_poller._cycle_lock.acquire()
    try:
        def drop_many():
            for _ in range(200):
                front_door_poller.tick()
                front_door_poller.run_cycle()

        threads = [threading.Thread(target=drop_many) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(5)
    finally:
        front_door_poller._cycle_lock.release()

    assert front_door_poller.dropped_ticks == 8 * 200 * 2
    assert front_door_poller.cycles == 0


def test_timer_runs_cycles_until_stopped(front_door_poller, broker):
    front_door_poller.interval = 0.01
    front_door_poller.start()
    try:
        deadline = time.time() + 2
        while front_door_poller.cycles == 0 and time.time() < deadline:
            time.sleep(0.01)
    finally:
        front_door_poller.stop()

    assert front_door_poller.cycles >= 1
    assert "ns/activeStreams/cam1/Alice" in broker.topics()


@pytest.mark.parametrize(
    "value, expected",
    [
        (3, 3),
        ("2", 2),
        ("2.0", 2),
        (1.5, 1.5),
        (None, 0),
        ("", 0),
        ("abc", 0),
        ("nan", 0),
        ([1], 0),
        (True, 1),
    ],
)
def test_parse_active_clients(value, expected):
    result = parse_active_clients(value)
    assert result == expected
    assert type(result) is type(expected)
