#!/usr/bin/env python3
"""
Start the Flood Mitigation Monitor API (simulator and dashboard consumer included).
"""
import sys
from pathlib import Path

import uvicorn

# Add the package directory to the Python path
sys.path.append(str(Path(__file__).parent))

from flood_mitigation.core.config import settings


def start_server():
    """Start the server."""
    print("Starting Flood Mitigation Monitor API...")
    print(
        f"Swagger UI will be available at: http://localhost:8000{settings.api_prefix}/docs"
    )
    print(f"MQTT broker: {settings.mqtt_broker_host}:{settings.mqtt_broker_port}")
    print(
        f"Simulator: {'on' if settings.simulator_enabled else 'off'} "
        f"(profile={settings.deployment_profile}, scenario={settings.scenario})"
    )
    print("\n" + "=" * 60 + "\n")

    uvicorn.run(
        "flood_mitigation.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    start_server()
