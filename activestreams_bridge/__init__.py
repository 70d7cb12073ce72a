"""
ActiveStreams Bridge - Flask Application Factory
"""
import atexit

from flask import Flask

from .config import Config
from .models.camera import DeviceRegistry
from .services.poller import StreamPoller
from .services.settings import AdaptiveStreamingSettings, TrackingSettings


def create_app(config_class=Config, broker=None):
    """Application factory pattern for Flask app creation.

    Builds the registry, settings providers, broker and poller and keeps them
    in app.extensions["activestreams"]. Nothing is started here.
    """
    config_class.validate()

    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config_class)

    registry = DeviceRegistry()
    adaptive_settings = AdaptiveStreamingSettings()
    tracking = TrackingSettings.from_config(config_class)

    if broker is None:
        from .services.mqtt import MqttBroker
        broker = MqttBroker(config_class, registry, adaptive_settings)

    poller = StreamPoller(
        registry,
        adaptive_settings,
        tracking,
        broker,
        interval=config_class.POLL_INTERVAL,
        namespace=config_class.MQTT_TOPIC_NAMESPACE,
        discovery_prefix=config_class.MQTT_DISCOVERY_PREFIX,
        device={
            'ids': config_class.DISCOVERY_DEVICE_ID,
            'name': config_class.DISCOVERY_DEVICE_NAME,
        },
    )

    app.extensions["activestreams"] = {
        "config": config_class,
        "registry": registry,
        "adaptive_settings": adaptive_settings,
        "tracking": tracking,
        "broker": broker,
        "poller": poller,
        "mdns": None,
    }

    # Register blueprints
    from .routes import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    return app


def start_services(app):
    """Start broker, mDNS discovery and poller, and stop them at exit"""
    bridge = app.extensions["activestreams"]
    config_class = bridge["config"]

    bridge["broker"].start()

    if config_class.MDNS_ENABLED:
        from .services.mdns import MdnsDiscovery
        bridge["mdns"] = MdnsDiscovery(bridge["registry"], config_class.MDNS_SERVICE_TYPE)
        bridge["mdns"].start()

    bridge["poller"].start()

    def cleanup():
        """Graceful shutdown - stop all services"""
        print("\n[System] Shutting down...")
        bridge["poller"].stop()
        if bridge["mdns"]:
            bridge["mdns"].stop()
        bridge["broker"].stop()
        print("[System] Shutdown complete")

    atexit.register(cleanup)
    return cleanup
