"""
mDNS device discovery for ActiveStreams Bridge.
Feeds camera nodes announced on the local network into the device registry.
"""

import socket
from zeroconf import ServiceBrowser, ServiceListener, Zeroconf

from ..models.camera import VIDEO_CAMERA


def extract_properties(info) -> dict:
    """Extract properties from mDNS TXT records"""
    properties = {}
    if info.properties:
        for key, value in info.properties.items():
            key_str = key.decode("utf-8") if isinstance(key, bytes) else key
            if value is None:
                value_str = ""
            else:
                value_str = value.decode("utf-8") if isinstance(value, bytes) else str(value)
            properties[key_str] = value_str
    return properties


def parse_capabilities(raw) -> list:
    """Comma separated capabilities, a node announcing none is a camera"""
    if not raw:
        return [VIDEO_CAMERA]
    return [cap.strip() for cap in raw.split(",") if cap.strip()]


class CameraNodeListener(ServiceListener):
    """Listener for camera node mDNS announcements"""

    def __init__(self, registry):
        self.registry = registry

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called when a new node is discovered"""
        print(f"[mDNS] Discovered service: {name}", flush=True)
        info = zc.get_service_info(type_, name)

        if info:
            self.register_node(name, info)
        else:
            print(f"[mDNS] Failed to resolve service: {name}", flush=True)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called when a node goes offline"""
        print(f"[mDNS] Service removed: {name}", flush=True)
        device_id = self.registry.find_by("mdns_name", name)
        if device_id and self.registry.mark_offline(device_id):
            print(f"[mDNS] Camera {device_id} marked offline", flush=True)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called when a service is updated"""
        info = zc.get_service_info(type_, name)
        if info:
            self.register_node(name, info)

    def register_node(self, name: str, info) -> str:
        """Register or refresh a discovered node, returns its device id"""
        properties = extract_properties(info)

        ip_address = None
        if info.addresses:
            ip_address = socket.inet_ntoa(info.addresses[0])

        camera_id = properties.get("camera_id", name.split(".")[0])
        camera_name = properties.get("name", f"Camera {camera_id}")
        capabilities = parse_capabilities(properties.get("capabilities"))
        status = properties.get("status", "discovered")

        if camera_id not in self.registry:
            print(f"[mDNS] Registering camera: {camera_id}", flush=True)
            print(f"       Name: {camera_name}", flush=True)
            print(f"       Capabilities: {', '.join(capabilities)}", flush=True)
            print(f"       IP: {ip_address}:{info.port}", flush=True)

        self.registry.register(
            camera_id,
            camera_name,
            capabilities,
            status=status,
            ip=ip_address,
            port=info.port,
            mdns_name=name,
            discovered_via="mdns",
        )
        return camera_id


class MdnsDiscovery:
    """Browses the configured service type while started"""

    def __init__(self, registry, service_type: str):
        self.registry = registry
        self.service_type = service_type
        self._zeroconf = None
        self._browser = None

    def start(self):
        """Start mDNS service discovery"""
        print(f"[mDNS] Starting discovery for {self.service_type}")

        self._zeroconf = Zeroconf()
        listener = CameraNodeListener(self.registry)
        self._browser = ServiceBrowser(self._zeroconf, self.service_type, listener)

        print("[mDNS] Discovery started, listening for camera nodes...", flush=True)

    def stop(self):
        """Stop mDNS discovery"""
        if self._zeroconf:
            self._zeroconf.close()
            self._zeroconf = None
            print("[mDNS] Discovery stopped")
