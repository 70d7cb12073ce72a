"""
Attribution of a camera's active connections to tracked entities.
"""
from typing import Iterable, List, Optional

from ..models.streams import Setting, StreamInfo

# Settings key carried by every per-connection entry of the streaming host
STREAM_SETTING_KEY = 'type'


def connection_ip(subgroup: Optional[str]) -> Optional[str]:
    """IP portion of an "ip:connection-id" subgroup"""
    if not subgroup:
        return None
    ip, sep, _ = subgroup.rpartition(':')
    return ip if sep else subgroup


def is_stream_setting(setting: Setting) -> bool:
    return setting.key == STREAM_SETTING_KEY and bool(setting.subgroup)


def to_stream_info(setting: Setting) -> StreamInfo:
    return StreamInfo(camera=setting.group, ip=connection_ip(setting.subgroup))


def stream_settings(settings: Iterable[Setting]) -> List[StreamInfo]:
    """Every active connection in a settings list, in input order"""
    return [to_stream_info(setting) for setting in settings if is_stream_setting(setting)]


def match_streams(settings: Iterable[Setting], ips: Iterable[str]) -> List[StreamInfo]:
    """Active connections whose IP starts with one of the given prefixes"""
    prefixes = [ip for ip in (ips or []) if ip]
    if not prefixes:
        return []

    matched = []
    for setting in settings:
        if not is_stream_setting(setting):
            continue
        ip = connection_ip(setting.subgroup)
        if any(ip.startswith(prefix) for prefix in prefixes):
            matched.append(StreamInfo(camera=setting.group, ip=ip))
    return matched
