#!/usr/bin/env python3
"""
ActiveStreams Bridge - Entry Point
"""
import signal
from dotenv import load_dotenv

# Load environment variables before importing app
load_dotenv()

from activestreams_bridge import create_app, start_services
from activestreams_bridge.config import Config, ConfigError


def main():
    """Main entry point"""
    try:
        app = create_app()
    except ConfigError as e:
        print(f"[Config] Invalid configuration: {e}")
        raise SystemExit(1)

    # Start background services
    start_services(app)

    signal.signal(signal.SIGINT, lambda s, f: exit(0))
    signal.signal(signal.SIGTERM, lambda s, f: exit(0))

    if Config.DEBUG:
        print("[Flask] WARNING: Debug mode is ENABLED (not for production!)")

    print(f"[Flask] Starting status API on http://0.0.0.0:{Config.API_PORT}")
    app.run(host='0.0.0.0', port=Config.API_PORT, debug=Config.DEBUG, threaded=True,
            use_reloader=False)


if __name__ == '__main__':
    main()
