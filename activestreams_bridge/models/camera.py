"""
Shared device registry for ActiveStreams Bridge.
Populated by mDNS discovery and MQTT device status messages.
"""
import threading
import time

# Capability a device must expose to be polled as a camera
VIDEO_CAMERA = 'VideoCamera'


class DeviceRegistry:
    """Thread-safe registry of devices known to the bridge"""

    def __init__(self):
        self._devices = {}
        self._lock = threading.Lock()

    def register(self, device_id: str, name: str, capabilities=None, status='discovered', **extra):
        """Add a device or replace its descriptive fields"""
        with self._lock:
            device = self._devices.setdefault(device_id, {'settings': []})
            device.update(extra)
            device['name'] = name or device.get('name') or device_id
            device['capabilities'] = list(capabilities or device.get('capabilities') or [])
            device['status'] = status
            device['last_seen'] = time.time()

    def update_status(self, device_id: str, status: str, **fields) -> bool:
        """Update a known device, returns False if it was never registered"""
        with self._lock:
            device = self._devices.get(device_id)
            if device is None:
                return False
            device.update(fields)
            device['status'] = status
            device['last_seen'] = time.time()
            return True

    def mark_offline(self, device_id: str) -> bool:
        with self._lock:
            if device_id not in self._devices:
                return False
            self._devices[device_id]['status'] = 'offline'
            return True

    def find_by(self, field: str, value):
        """Return the id of the first device whose field matches value"""
        with self._lock:
            for device_id, device in self._devices.items():
                if device.get(field) == value:
                    return device_id
        return None

    def list_devices(self):
        """All devices as [{id, name, capabilities}] in registration order"""
        with self._lock:
            return [
                {
                    'id': device_id,
                    'name': device['name'],
                    'capabilities': list(device['capabilities']),
                }
                for device_id, device in self._devices.items()
            ]

    def get_device(self, device_id: str) -> dict:
        """Name and settings of one device, raises KeyError for unknown ids"""
        with self._lock:
            device = self._devices[device_id]
            return {'name': device['name'], 'settings': list(device.get('settings', []))}

    def snapshot(self) -> dict:
        """Copy of every device record, for the status API"""
        with self._lock:
            return {device_id: dict(device) for device_id, device in self._devices.items()}

    def __contains__(self, device_id):
        with self._lock:
            return device_id in self._devices

    def __len__(self):
        with self._lock:
            return len(self._devices)
