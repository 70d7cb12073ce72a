"""
API routes for ActiveStreams Bridge.
Read-only endpoints exposing the registry, settings and published state.
"""

from flask import Blueprint, current_app, jsonify

api_bp = Blueprint("api", __name__)


def _bridge():
    return current_app.extensions["activestreams"]


@api_bp.route("/health")
def health_check():
    """Health check endpoint for system monitoring"""
    broker = _bridge()["broker"]
    return jsonify(
        {
            "status": "healthy",
            "service": "ActiveStreams Bridge",
            "mqtt_connected": bool(getattr(broker, "connected", False)),
        }
    )


@api_bp.route("/cameras")
def get_cameras():
    """Get all known devices with their current status"""
    devices = _bridge()["registry"].snapshot()
    for device in devices.values():
        device["settings"] = [setting.to_dict() for setting in device.get("settings", [])]
    return jsonify(devices)


@api_bp.route("/settings")
def get_settings():
    """Whitelisted cameras and tracked entity settings"""
    tracking = _bridge()["tracking"]
    return jsonify(
        {
            "cameras": tracking.cameras,
            "entities": [setting.to_dict() for setting in tracking.get_settings()],
        }
    )


@api_bp.route("/streams")
def get_streams():
    """Last value published on every state topic"""
    return jsonify(_bridge()["poller"].publisher.snapshot())


@api_bp.route("/status")
def get_status():
    """Poll cycle status"""
    return jsonify(_bridge()["poller"].status())
