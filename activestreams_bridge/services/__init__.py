"""
Services for ActiveStreams Bridge.
"""
from .announcer import DiscoveryAnnouncer, DiscoveryError
from .matcher import match_streams
from .poller import StreamPoller
from .publisher import ChangeGatedPublisher
from .settings import AdaptiveStreamingSettings, SettingsUnavailableError, TrackingSettings
from .topics import Topics, get_topics

__all__ = [
    "DiscoveryAnnouncer",
    "DiscoveryError",
    "match_streams",
    "StreamPoller",
    "ChangeGatedPublisher",
    "AdaptiveStreamingSettings",
    "SettingsUnavailableError",
    "TrackingSettings",
    "Topics",
    "get_topics",
]
