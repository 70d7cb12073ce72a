import pytest

from activestreams_bridge.models.camera import DeviceRegistry, VIDEO_CAMERA
from activestreams_bridge.models.streams import Setting
from activestreams_bridge.services.poller import StreamPoller
from activestreams_bridge.services.settings import AdaptiveStreamingSettings, TrackingSettings


class FakeBroker:
    """Records every publish, optionally refusing some topics"""

    def __init__(self):
        self.messages = []
        self.fail_topics = set()
        self.connected = True

    def publish(self, topic, payload, retain=False):
        if topic in self.fail_topics:
            return False
        self.messages.append((topic, payload, retain))
        return True

    def topics(self):
        return [topic for topic, _, _ in self.messages]

    def payloads(self):
        return {topic: payload for topic, payload, _ in self.messages}

    def clear(self):
        self.messages = []


def connection(camera_name, ip, connection_id=1):
    return Setting(group=camera_name, subgroup=f"{ip}:{connection_id}", key="type",
                   title="Type", value="remote")


def active_streams(camera_name, value):
    return Setting(group=camera_name, subgroup="Summary", key="activeStreams",
                   title="Active Streams", value=value)


class FakeAdaptiveSettings:
    def __init__(self, settings):
        self.settings = settings
        self.calls = 0

    def get_settings(self):
        self.calls += 1
        return list(self.settings)


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def registry():
    registry = DeviceRegistry()
    registry.register("cam1", "Front Door", [VIDEO_CAMERA])
    return registry


@pytest.fixture
def front_door_poller(broker, registry):
    """cam1 "Front Door" whitelisted, Alice on 192.168.1 streaming from it"""
    adaptive = AdaptiveStreamingSettings()
    adaptive.update_from_payload(
        '[{"group": "Front Door", "subgroup": "192.168.1.10:42", "key": "type",'
        ' "title": "Type", "value": "remote"},'
        ' {"group": "Front Door", "subgroup": "Summary", "key": "activeStreams",'
        ' "title": "Active Streams", "value": "1"}]'
    )
    tracking = TrackingSettings(cameras=["cam1"], entities={"Alice": ["192.168.1"]})
    return StreamPoller(registry, adaptive, tracking, broker, namespace="ns")
