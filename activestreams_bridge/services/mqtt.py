"""
MQTT client for ActiveStreams Bridge.
Publishes active stream facts and receives streaming host settings and
device status messages.
"""

import ssl
import json
import paho.mqtt.client as mqtt

from ..models.streams import Setting


def format_payload(payload):
    """Wire format of a published value, booleans as true/false"""
    if isinstance(payload, bool):
        return 'true' if payload else 'false'
    if isinstance(payload, (int, float)):
        return str(payload)
    return payload


def device_id_from_topic(topic: str, subscription: str):
    """Value of the '+' level of a status subscription, None if it does not match"""
    topic_parts = topic.split('/')
    sub_parts = subscription.split('/')
    if len(topic_parts) != len(sub_parts) or '+' not in sub_parts:
        return None
    if not mqtt.topic_matches_sub(subscription, topic):
        return None
    return topic_parts[sub_parts.index('+')]


class MqttBroker:
    """Paho client wrapper used by the poller as its broker"""

    def __init__(self, config, registry=None, adaptive_settings=None):
        self.config = config
        self.registry = registry
        self.adaptive_settings = adaptive_settings
        self.connected = False

        self._client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=config.MQTT_CLIENT_ID)
        if config.MQTT_USERNAME:
            self._client.username_pw_set(config.MQTT_USERNAME, config.MQTT_PASSWORD)

        if config.MQTT_USE_TLS:
            # Accept self-signed broker certificates
            ssl_context = ssl.create_default_context()
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
            self._client.tls_set_context(ssl_context)
            print("[MQTT] TLS encryption enabled")

        self._client.on_connect = self._on_connect
        self._client.on_message = self._on_message
        self._client.on_disconnect = self._on_disconnect

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """Called when connected to MQTT broker"""
        print(f"[MQTT] Connected with result code {reason_code}", flush=True)
        self.connected = not reason_code.is_failure
        if self.adaptive_settings is not None:
            client.subscribe(self.config.ADAPTIVE_STREAMING_TOPIC)
            print(f"[MQTT] Subscribed to {self.config.ADAPTIVE_STREAMING_TOPIC}", flush=True)
        if self.registry is not None:
            client.subscribe(self.config.DEVICE_STATUS_TOPIC)
            print(f"[MQTT] Subscribed to {self.config.DEVICE_STATUS_TOPIC}", flush=True)

    def _on_message(self, client, userdata, msg):
        """Called when a message is received from MQTT"""
        topic = msg.topic
        try:
            payload = msg.payload.decode("utf-8")
        except UnicodeDecodeError as e:
            print(f"[MQTT] Ignoring non UTF-8 message on {topic}: {e}", flush=True)
            return

        if topic == self.config.ADAPTIVE_STREAMING_TOPIC and self.adaptive_settings is not None:
            try:
                count = self.adaptive_settings.update_from_payload(payload)
                print(f"[MQTT] Received {count} adaptive streaming settings", flush=True)
            except ValueError as e:
                print(f"[MQTT] Ignoring malformed adaptive streaming settings: {e}", flush=True)
            return

        if self.registry is None:
            return
        device_id = device_id_from_topic(topic, self.config.DEVICE_STATUS_TOPIC)
        if device_id:
            self._handle_status(device_id, payload)

    def _handle_status(self, device_id: str, payload: str):
        """Register or update a device from its status message"""
        try:
            status_data = json.loads(payload)
        except json.JSONDecodeError:
            status_data = None

        if not isinstance(status_data, dict):
            # Plain text status
            if not self.registry.update_status(device_id, payload):
                print(f"[MQTT] Status for unknown device {device_id}: {payload}", flush=True)
            return

        status = status_data.get("status", "online")
        fields = {}
        if "settings" in status_data:
            try:
                fields["settings"] = [Setting.from_dict(entry) for entry in status_data["settings"]]
            except (TypeError, ValueError) as e:
                print(f"[MQTT] Ignoring malformed settings from {device_id}: {e}", flush=True)

        capabilities = status_data.get("capabilities")
        if isinstance(capabilities, str):
            capabilities = [cap.strip() for cap in capabilities.split(",") if cap.strip()]
        elif isinstance(capabilities, list):
            capabilities = [cap for cap in capabilities if isinstance(cap, str)]
        elif capabilities is not None:
            print(f"[MQTT] Ignoring malformed capabilities from {device_id}: {capabilities!r}", flush=True)
            capabilities = None

        if device_id in self.registry:
            if capabilities is not None:
                fields["capabilities"] = list(capabilities)
            if "name" in status_data:
                fields["name"] = status_data["name"]
            self.registry.update_status(device_id, status, **fields)
        else:
            self.registry.register(
                device_id,
                status_data.get("name", device_id),
                capabilities or [],
                status=status,
                discovered_via="mqtt",
                **fields,
            )
            print(f"[MQTT] Registered device {device_id} from status message", flush=True)
        print(f"[MQTT] {device_id} status: {status}", flush=True)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        """Called when disconnected from MQTT broker"""
        self.connected = False
        print(f"[MQTT] Disconnected with result code {reason_code}", flush=True)

    def start(self):
        """Start MQTT client in background thread with auto-reconnect"""
        self._client.reconnect_delay_set(min_delay=1, max_delay=30)
        try:
            self._client.connect(self.config.MQTT_BROKER, self.config.MQTT_PORT, 60)
            self._client.loop_start()
            print("[MQTT] Client started")
        except Exception as e:
            print(f"[MQTT] Initial connection failed: {e}")
            print("[MQTT] Will retry in background...")
            self._client.loop_start()

    def stop(self):
        """Stop MQTT client"""
        self._client.loop_stop()
        self._client.disconnect()
        print("[MQTT] Client stopped")

    def publish(self, topic: str, payload, retain: bool = False) -> bool:
        """Hand a message to the client, returns False if it was refused"""
        result = self._client.publish(topic, format_payload(payload), retain=retain)

        if result.rc == mqtt.MQTT_ERR_SUCCESS:
            return True
        print(f"[MQTT] Failed to publish to {topic}: {mqtt.error_string(result.rc)}", flush=True)
        return False
