"""
Configuration classes for ActiveStreams Bridge.
"""
import os
import json


# Characters that would let a camera id or entity name escape its topic level
TOPIC_UNSAFE_CHARS = ('/', '+', '#')

# Last level of every detail topic, never usable as an id or name
RESERVED_TOPIC_SEGMENT = 'info'


class ConfigError(ValueError):
    """Raised when the bridge configuration cannot be used"""


def parse_camera_list(raw):
    """Parse a comma separated list of camera ids"""
    if not raw:
        return []
    return [item.strip() for item in raw.split(',') if item.strip()]


def parse_tracked_entities(raw):
    """Parse the TRACKED_ENTITIES JSON object into {name: [ip prefixes]}"""
    if not raw:
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"TRACKED_ENTITIES is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ConfigError("TRACKED_ENTITIES must be a JSON object of name -> [ip prefixes]")

    entities = {}
    for name, ips in data.items():
        if isinstance(ips, str):
            ips = [ips]
        if not isinstance(ips, list) or not all(isinstance(ip, str) for ip in ips):
            raise ConfigError(f"IP prefixes for '{name}' must be a list of strings")
        entities[name.strip()] = [ip.strip() for ip in ips if ip.strip()]
    return entities


def validate_topic_name(kind: str, name: str) -> None:
    """Reject names that could collide with another topic once concatenated"""
    if not name:
        raise ConfigError(f"Empty {kind} name")
    for char in TOPIC_UNSAFE_CHARS:
        if char in name:
            raise ConfigError(f"{kind} '{name}' must not contain '{char}'")
    if name == RESERVED_TOPIC_SEGMENT:
        raise ConfigError(f"{kind} name '{name}' is reserved")


def check_topic_collisions(cameras, entities, namespace='scrypted', discovery_prefix='homeassistant'):
    """Reject camera/entity combinations whose topics or discovery ids coincide"""
    from .services.topics import get_topics

    for name in entities:
        if name in cameras:
            raise ConfigError(f"'{name}' is both a whitelisted camera and an entity")

    scopes = [(None, None)]
    scopes += [(camera_id, None) for camera_id in cameras]
    scopes += [(None, name) for name in entities]
    scopes += [(camera_id, name) for camera_id in cameras for name in entities]

    seen = {}
    for scope in scopes:
        topics = get_topics(scope[0], scope[1], namespace, discovery_prefix)
        for value in (topics.state, topics.detail, topics.discovery_id):
            other = seen.setdefault(value, scope)
            if other != scope:
                raise ConfigError(f"{scope} and {other} would both use '{value}'")


class Config:
    """Base configuration class"""

    # MQTT (TLS on port 8883)
    MQTT_BROKER = os.environ.get('MQTT_BROKER', 'localhost')
    MQTT_PORT = int(os.environ.get('MQTT_PORT', '8883'))
    MQTT_USE_TLS = os.environ.get('MQTT_USE_TLS', 'true').lower() == 'true'
    MQTT_CLIENT_ID = os.environ.get('MQTT_CLIENT_ID', 'activestreams_bridge')
    MQTT_USERNAME = os.environ.get('MQTT_USERNAME', '')
    MQTT_PASSWORD = os.environ.get('MQTT_PASSWORD', '')

    # Topic layout
    MQTT_TOPIC_NAMESPACE = os.environ.get('MQTT_TOPIC_NAMESPACE', 'scrypted')
    MQTT_DISCOVERY_PREFIX = os.environ.get('MQTT_DISCOVERY_PREFIX', 'homeassistant')
    ADAPTIVE_STREAMING_TOPIC = os.environ.get(
        'ADAPTIVE_STREAMING_TOPIC', f"{MQTT_TOPIC_NAMESPACE}/adaptiveStreaming/settings"
    )
    DEVICE_STATUS_TOPIC = os.environ.get(
        'DEVICE_STATUS_TOPIC', f"{MQTT_TOPIC_NAMESPACE}/devices/+/status"
    )

    # Discovery device descriptor shown by the dashboard
    DISCOVERY_DEVICE_ID = 'scrypted-activeStream'
    DISCOVERY_DEVICE_NAME = 'Scrypted Active streams info'

    # Polling
    POLL_INTERVAL = float(os.environ.get('POLL_INTERVAL', '10'))

    # What to publish
    WHITELISTED_CAMERAS = parse_camera_list(os.environ.get('WHITELISTED_CAMERAS', ''))
    TRACKED_ENTITIES_RAW = os.environ.get('TRACKED_ENTITIES', '')

    # mDNS
    MDNS_ENABLED = os.environ.get('MDNS_ENABLED', 'true').lower() == 'true'
    MDNS_SERVICE_TYPE = os.environ.get('MDNS_SERVICE_TYPE', '_activestreams._tcp.local.')

    # Status API
    API_PORT = int(os.environ.get('API_PORT', '5000'))
    DEBUG = os.environ.get('DEBUG', 'false').lower() == 'true'

    @classmethod
    def tracked_entities(cls):
        """Tracked entities as {name: [ip prefixes]}, in configuration order"""
        return parse_tracked_entities(cls.TRACKED_ENTITIES_RAW)

    @classmethod
    def validate(cls):
        """Check every id and name that ends up inside a topic"""
        for camera_id in cls.WHITELISTED_CAMERAS:
            validate_topic_name('camera', camera_id)
        for name in cls.tracked_entities():
            validate_topic_name('entity', name)
        if cls.POLL_INTERVAL <= 0:
            raise ConfigError("POLL_INTERVAL must be positive")
        for char in ('+', '#'):
            if char in cls.MQTT_TOPIC_NAMESPACE or char in cls.MQTT_DISCOVERY_PREFIX:
                raise ConfigError(f"Topic prefixes must not contain '{char}'")
        check_topic_collisions(
            cls.WHITELISTED_CAMERAS,
            list(cls.tracked_entities()),
            cls.MQTT_TOPIC_NAMESPACE,
            cls.MQTT_DISCOVERY_PREFIX,
        )
        return True


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    MQTT_USE_TLS = False
    MQTT_PORT = 1883
