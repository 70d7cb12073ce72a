from .camera import DeviceRegistry, VIDEO_CAMERA
from .streams import Setting, StreamInfo, streams_payload

__all__ = [
    "DeviceRegistry",
    "VIDEO_CAMERA",
    "Setting",
    "StreamInfo",
    "streams_payload",
]
