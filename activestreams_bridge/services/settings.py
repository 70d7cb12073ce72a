"""
Settings providers consumed by the poller.

AdaptiveStreamingSettings holds the latest per-connection settings list
published by the streaming host. TrackingSettings holds the cameras to
publish and the IP prefixes of every tracked entity.
"""
import json
import threading
import time

from ..config import validate_topic_name
from ..models.streams import Setting

IPS_KEY = 'activeStreamsIps'
TRACKED_ENTITIES_GROUP = 'Tracked entities'


class SettingsUnavailableError(RuntimeError):
    """Raised when no settings snapshot has been received yet"""


class AdaptiveStreamingSettings:
    """Latest settings snapshot received from the streaming host"""

    def __init__(self):
        self._settings = None
        self._received_at = None
        self._lock = threading.Lock()

    def update_from_payload(self, payload: str) -> int:
        """Replace the snapshot with a JSON list of settings entries.

        Raises ValueError if the payload is not a list of objects, in which
        case the previous snapshot is kept.
        """
        data = json.loads(payload)
        if not isinstance(data, list):
            raise ValueError("Adaptive streaming settings must be a JSON list")
        settings = [Setting.from_dict(entry) for entry in data]

        with self._lock:
            self._settings = settings
            self._received_at = time.time()
        return len(settings)

    def get_settings(self):
        with self._lock:
            if self._settings is None:
                raise SettingsUnavailableError("No adaptive streaming settings received yet")
            return list(self._settings)

    @property
    def received_at(self):
        return self._received_at


class TrackingSettings:
    """Whitelisted cameras and tracked entities"""

    def __init__(self, cameras=None, entities=None):
        self._lock = threading.Lock()
        self._cameras = list(cameras or [])
        self._entities = {}
        for name, ips in (entities or {}).items():
            self.set_ips(name, ips)

    @classmethod
    def from_config(cls, config):
        return cls(cameras=config.WHITELISTED_CAMERAS, entities=config.tracked_entities())

    @property
    def cameras(self):
        with self._lock:
            return list(self._cameras)

    @property
    def entities(self):
        """Entity names in configuration order"""
        with self._lock:
            return list(self._entities)

    def set_ips(self, name: str, ips) -> None:
        validate_topic_name('entity', name)
        with self._lock:
            self._entities[name] = [ip for ip in ips if ip]

    def get_settings(self):
        """Entity IP prefixes as settings entries, one per entity"""
        with self._lock:
            return [
                Setting(
                    group=TRACKED_ENTITIES_GROUP,
                    subgroup=name,
                    key=f"{IPS_KEY}:{name}",
                    title='IPs',
                    value=list(ips),
                )
                for name, ips in self._entities.items()
            ]


def ips_from_settings(settings, name: str):
    """IP prefixes of an entity, looked up in a list of tracking settings entries"""
    key = f"{IPS_KEY}:{name}"
    for setting in settings:
        if setting.key == key:
            return list(setting.value or [])
    return []
