"""
MQTT topic naming for active stream facts.
"""
from typing import NamedTuple, Optional

STATE_ROOT = 'activeStreams'
DETAIL_SUFFIX = 'info'


class Topics(NamedTuple):
    state: str
    detail: str
    discovery: str
    component: str
    discovery_id: str


def detail_topic(state_topic: str) -> str:
    """Sibling topic carrying the JSON detail of a state topic"""
    return f"{state_topic}/{DETAIL_SUFFIX}"


def get_topics(
    camera_id: Optional[str] = None,
    entity: Optional[str] = None,
    namespace: str = 'scrypted',
    discovery_prefix: str = 'homeassistant',
) -> Topics:
    """Map an optional camera id and entity name to their topics.

    Neither given: global counter. Camera only: per-camera counter.
    Entity only: cross-camera counter for the entity. Both: binary sensor
    telling whether the entity is streaming from that camera.
    """
    base = f"{namespace}/{STATE_ROOT}"

    if camera_id and entity:
        state = f"{base}/{camera_id}/{entity}"
        component = 'binary_sensor'
        discovery_id = f"activeStream-{camera_id}-{entity}"
    elif camera_id:
        state = f"{base}/{camera_id}"
        component = 'sensor'
        discovery_id = f"activeStreams-{camera_id}"
    elif entity:
        state = f"{base}/{entity}"
        component = 'sensor'
        discovery_id = f"activeStream-{entity}"
    else:
        state = base
        component = 'sensor'
        discovery_id = STATE_ROOT

    return Topics(
        state=state,
        detail=detail_topic(state),
        discovery=f"{discovery_prefix}/{component}/{namespace}/{discovery_id}/config",
        component=component,
        discovery_id=discovery_id,
    )
