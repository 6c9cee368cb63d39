"""Standalone MQTT simulator.

Usage examples (from repository root):

  flood-simulator
  flood-simulator --scenario flood --seed 42
  flood-simulator --profile pure_sensor --sensor-interval 3 --prediction-interval 5
  python -m flood_mitigation.simulator --scenario heavy_rain

Stops on SIGINT/SIGTERM and closes the broker connection.
"""

import argparse
import asyncio
import logging
import random
import signal
import sys
from typing import List, Optional

from flood_mitigation.core.config import settings
from flood_mitigation.core.exceptions import ConfigurationException
from flood_mitigation.core.logging_config import setup_logging
from flood_mitigation.services.mqtt_client import MQTTClient
from flood_mitigation.services.publisher import SimulationRunner
from flood_mitigation.simulation.generator import ScenarioMode
from flood_mitigation.simulation.profiles import PROFILES, get_profile

logger = logging.getLogger("flood_mitigation.simulator")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flood-simulator",
        description="Publish synthetic flood sensor, weather and prediction data over MQTT.",
    )
    parser.add_argument(
        "--profile",
        default=settings.deployment_profile,
        choices=sorted(PROFILES),
        help="Deployment profile (thresholds, weights, ceilings)",
    )
    parser.add_argument(
        "--scenario",
        default=settings.scenario,
        choices=[mode.value for mode in ScenarioMode],
        help="Initial scenario mode",
    )
    parser.add_argument("--seed", type=int, default=settings.simulation_seed)
    parser.add_argument(
        "--sensor-interval", type=float, default=settings.sensor_interval_seconds
    )
    parser.add_argument(
        "--weather-interval", type=float, default=settings.weather_interval_seconds
    )
    parser.add_argument(
        "--prediction-interval",
        type=float,
        default=settings.prediction_interval_seconds,
    )
    parser.add_argument("--log-level", default=settings.log_level)
    return parser


async def run_simulator(args: argparse.Namespace) -> None:
    profile = get_profile(args.profile)
    client = MQTTClient()
    runner = SimulationRunner(
        client,
        profile,
        mode=ScenarioMode(args.scenario),
        rng=random.Random(args.seed),
        device_id=client.client_id,
        sensor_interval=args.sensor_interval,
        weather_interval=args.weather_interval,
        prediction_interval=args.prediction_interval,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still ends asyncio.run
            pass

    client.connect()
    try:
        await runner.run(stop_event)
    finally:
        client.disconnect()
        logger.info("Simulator shut down")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)
    logger.info("Flood Mitigation MQTT Simulator")
    logger.info(
        f"Broker {settings.mqtt_broker_host}:{settings.mqtt_broker_port}, "
        f"profile={args.profile}, scenario={args.scenario}"
    )
    try:
        asyncio.run(run_simulator(args))
    except ConfigurationException as e:
        logger.error(e.message)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
