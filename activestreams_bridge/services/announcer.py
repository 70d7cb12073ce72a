"""
Home Assistant MQTT discovery for the active stream sensors.
Each sensor is announced once per process lifetime.
"""
import json

from .topics import get_topics

ATTRIBUTES_TEMPLATE = '{{ value_json | tojson }}'


class DiscoveryError(RuntimeError):
    """Raised when a discovery document could not be handed to the broker"""


class DiscoveryAnnouncer:
    """Publishes discovery documents for every sensor, at most once"""

    def __init__(self, broker, namespace='scrypted', discovery_prefix='homeassistant',
                 device=None):
        self.broker = broker
        self.namespace = namespace
        self.discovery_prefix = discovery_prefix
        self.device = device or {
            'ids': 'scrypted-activeStream',
            'name': 'Scrypted Active streams info',
        }
        self.published = False

    def _topics(self, camera_id=None, entity=None):
        return get_topics(camera_id, entity, self.namespace, self.discovery_prefix)

    def build_config(self, topics, name, binary=False) -> dict:
        config = {
            'state_topic': topics.state,
            'json_attributes_topic': topics.detail,
            'json_attributes_template': ATTRIBUTES_TEMPLATE,
            'dev': dict(self.device),
            'unique_id': topics.discovery_id,
            'name': name,
        }
        if binary:
            config['payload_on'] = 'true'
            config['payload_off'] = 'false'
        return config

    def documents(self, cameras, whitelisted_camera_ids, entities):
        """Yield (discovery topic, document) for every sensor"""
        for camera in cameras:
            camera_id = camera['id']
            if camera_id not in whitelisted_camera_ids:
                continue
            camera_name = camera['name']

            for entity in entities:
                topics = self._topics(camera_id, entity)
                yield topics.discovery, self.build_config(
                    topics, f"{camera_name} {entity} active", binary=True
                )

            topics = self._topics(camera_id)
            yield topics.discovery, self.build_config(topics, f"{camera_name} active streams")

        for entity in entities:
            topics = self._topics(entity=entity)
            yield topics.discovery, self.build_config(topics, f"{entity} active streams")

        topics = self._topics()
        yield topics.discovery, self.build_config(topics, 'All active streams')

    def announce(self, cameras, whitelisted_camera_ids, entities) -> bool:
        """Publish every discovery document unless already done.

        Returns True when documents were published by this call. A failed
        write raises DiscoveryError and leaves the latch unset.
        """
        if self.published:
            return False

        count = 0
        for topic, config in self.documents(cameras, whitelisted_camera_ids, entities):
            if not self.broker.publish(topic, json.dumps(config), retain=True):
                raise DiscoveryError(f"Failed to publish discovery document {topic}")
            count += 1

        self.published = True
        print(f"[Discovery] Published {count} discovery documents", flush=True)
        return True
