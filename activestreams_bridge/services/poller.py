"""
Periodic poll cycle for ActiveStreams Bridge.

Every interval the poller reads the cameras, the tracked entities and the
streaming host settings, derives the active stream facts and hands them to
the change-gated publisher, then makes sure discovery was announced.
"""
import math
import threading
import time

from ..models.camera import VIDEO_CAMERA
from ..models.streams import streams_payload
from .announcer import DiscoveryAnnouncer
from .matcher import match_streams, stream_settings
from .publisher import ChangeGatedPublisher
from .settings import ips_from_settings
from .topics import get_topics

ACTIVE_STREAMS_TITLE = 'Active Streams'


def parse_active_clients(value):
    """Numeric value of an "Active Streams" setting, 0 when unusable"""
    if value is None or isinstance(value, (list, dict)):
        return 0
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number


class StreamPoller:
    """Runs poll cycles on a fixed interval, never two at the same time"""

    def __init__(self, registry, adaptive_settings, tracking, broker,
                 interval=10.0, namespace='scrypted', discovery_prefix='homeassistant',
                 device=None):
        self.registry = registry
        self.adaptive_settings = adaptive_settings
        self.tracking = tracking
        self.broker = broker
        self.interval = interval
        self.namespace = namespace
        self.discovery_prefix = discovery_prefix

        # Survive across cycles, reset only on restart
        self.cache = {}
        self.publisher = ChangeGatedPublisher(broker, self.cache)
        self.announcer = DiscoveryAnnouncer(broker, namespace, discovery_prefix, device)

        self._cycle_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread = None

        self.cycles = 0
        self.dropped_ticks = 0
        self.last_cycle_at = None
        self.last_error = None

    def _topic(self, camera_id=None, entity=None):
        return get_topics(camera_id, entity, self.namespace, self.discovery_prefix).state

    @property
    def is_running(self) -> bool:
        """True while a cycle is in progress"""
        return self._cycle_lock.locked()

    def start(self):
        """Start the timer thread"""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._timer_loop, daemon=True)
        self._thread.start()
        print(f"[Poller] Started, polling every {self.interval}s", flush=True)

    def stop(self):
        """Stop the timer thread, an in-flight cycle is abandoned"""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        print("[Poller] Stopped")

    def _timer_loop(self):
        while not self._stop_event.wait(self.interval):
            self.tick()

    def _drop(self, what: str):
        # Timer and worker threads can both drop at once
        with self._stats_lock:
            self.dropped_ticks += 1
        print(f"[Poller] Previous cycle still running, skipping {what}", flush=True)

    def tick(self) -> bool:
        """Run a cycle on a worker thread, returns False if the tick was dropped"""
        if self.is_running:
            self._drop("tick")
            return False
        threading.Thread(target=self.run_cycle, daemon=True).start()
        return True

    def run_cycle(self) -> bool:
        """Run one cycle now. Failures are logged, never raised."""
        if not self._cycle_lock.acquire(blocking=False):
            self._drop("cycle")
            return False

        try:
            self._cycle()
            self.last_error = None
            return True
        except Exception as e:
            self.last_error = str(e)
            print(f"[Poller] Cycle failed: {e}", flush=True)
            return False
        finally:
            with self._stats_lock:
                self.cycles += 1
                self.last_cycle_at = time.time()
            self._cycle_lock.release()

    def _cameras(self):
        cameras = []
        for device in self.registry.list_devices():
            if VIDEO_CAMERA not in device.get('capabilities', []):
                continue
            details = self.registry.get_device(device['id'])
            cameras.append({'id': device['id'], 'name': details['name']})
        return cameras

    def _cycle(self):
        cameras = self._cameras()

        whitelist = self.tracking.cameras
        entities = self.tracking.entities
        tracking_settings = self.tracking.get_settings()
        entity_ips = {name: ips_from_settings(tracking_settings, name) for name in entities}

        settings = self.adaptive_settings.get_settings()

        total_active_streams = 0
        entity_streams = {name: [] for name in entities}

        for camera in cameras:
            camera_id = camera['id']
            is_whitelisted = camera_id in whitelist
            camera_settings = [s for s in settings if s.group == camera['name']]

            active_clients = 0
            for setting in camera_settings:
                if setting.title == ACTIVE_STREAMS_TITLE:
                    active_clients = parse_active_clients(setting.value)
                    break

            camera_streams = []
            for name in entities:
                streams = match_streams(camera_settings, entity_ips[name])
                camera_streams.extend(streams)
                entity_streams[name].extend(streams)

                if is_whitelisted:
                    self.publisher.publish(
                        self._topic(camera_id, name), bool(streams), streams_payload(streams)
                    )

            if is_whitelisted:
                self.publisher.publish(
                    self._topic(camera_id), active_clients, streams_payload(camera_streams)
                )

            total_active_streams += active_clients

        for name in entities:
            streams = entity_streams[name]
            self.publisher.publish(self._topic(entity=name), len(streams), streams_payload(streams))

        self.publisher.publish(
            self._topic(), total_active_streams, streams_payload(stream_settings(settings))
        )

        self.announcer.announce(cameras, whitelist, entities)

    def status(self) -> dict:
        return {
            'state': 'running' if self.is_running else 'idle',
            'cycles': self.cycles,
            'dropped_ticks': self.dropped_ticks,
            'last_cycle_at': self.last_cycle_at,
            'last_error': self.last_error,
            'discovery_published': self.announcer.published,
        }
