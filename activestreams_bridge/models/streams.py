"""
Settings entries and stream records shared by the polling services.
"""
from dataclasses import dataclass, asdict
from typing import Any, Optional


@dataclass(frozen=True)
class Setting:
    """One settings entry as exposed by the streaming host and by the tracking settings"""
    group: Optional[str] = None
    subgroup: Optional[str] = None
    key: Optional[str] = None
    title: Optional[str] = None
    value: Any = None

    @classmethod
    def from_dict(cls, data: dict) -> "Setting":
        """Build a Setting from a decoded JSON object, ignoring unknown fields"""
        if not isinstance(data, dict):
            raise ValueError(f"Setting entry must be an object, got {type(data).__name__}")
        return cls(
            group=data.get('group'),
            subgroup=data.get('subgroup'),
            key=data.get('key'),
            title=data.get('title'),
            value=data.get('value'),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class StreamInfo:
    """One active connection on a camera"""
    camera: str
    ip: str

    def to_dict(self) -> dict:
        return {'camera': self.camera, 'ip': self.ip}


def streams_payload(streams) -> dict:
    """Detail payload published next to every state topic"""
    return {'streams': [stream.to_dict() for stream in streams]}
