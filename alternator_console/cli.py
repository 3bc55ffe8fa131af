"""Command-line interface for alternator-console."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional

from . import constants
from .app import AlternatorConsole
from .config import ConsoleConfig, load_config
from .logging import configure_logging
from .render import MemoryRenderSink, TELEMETRY_SLOTS

LOGGER = logging.getLogger(__name__)

_TELEMETRY_LABELS = {
    "voltage": "Voltage",
    "current": "Current",
    "field_pwm": "Field PWM",
    "alt_temp": "Alt Temp",
    "batt_temp": "Batt Temp",
    "rpm": "Engine RPM",
    "stage": "Stage",
    "can_status": "CAN Status",
    "last_can": "Last CAN Update",
    "bms_permission": "BMS Permission",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=constants.APP_NAME, description="Monitor and control an alternator regulator"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--url", help="Regulator base URL, overrides [device] url")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("start", help="Run the console until interrupted")
    subparsers.add_parser("show-config", help="Print the resolved configuration and exit")
    subparsers.add_parser("status", help="Fetch and print one telemetry snapshot")
    subparsers.add_parser("log", help="Print the regulator log")

    enable_parser = subparsers.add_parser("enable", help="Enable or disable the regulator")
    enable_parser.add_argument("state", choices=("on", "off"))

    save_parser = subparsers.add_parser(
        "save-config", help="Load the regulator configuration, apply edits and save it"
    )
    save_parser.add_argument("--target-voltage")
    save_parser.add_argument("--current-limit")
    save_parser.add_argument("--float-voltage")
    save_parser.add_argument("--derate-temp")
    save_parser.add_argument(
        "--can-input", action=argparse.BooleanOptionalAction, default=None
    )

    network_parser = subparsers.add_parser(
        "network", help="Send Wi-Fi credentials; the regulator restarts afterwards"
    )
    network_parser.add_argument("--ssid", required=True)
    network_parser.add_argument("--password", default="")

    return parser


def _run_once(
    config: ConsoleConfig,
    action: Callable[[AlternatorConsole], Awaitable[bool]],
) -> int:
    async def _runner() -> bool:
        console = AlternatorConsole(config, sink=MemoryRenderSink())
        try:
            return await action(console)
        finally:
            await console.stop()

    return 0 if asyncio.run(_runner()) else 1


async def _print_status(console: AlternatorConsole) -> bool:
    if not await console.poller.poll_once():
        return False
    snapshot = console.poller.snapshot
    if snapshot is None:
        return False
    texts = snapshot.display_values()
    width = max(len(label) for label in _TELEMETRY_LABELS.values())
    for slot in TELEMETRY_SLOTS:
        print(f"{_TELEMETRY_LABELS[slot]:<{width}}  {texts[slot]}")
    return True


async def _print_log(console: AlternatorConsole) -> bool:
    if not await console.device_log.load():
        return False
    print(console.device_log.text or "")
    return True


def _set_enable(enabled: bool) -> Callable[[AlternatorConsole], Awaitable[bool]]:
    async def _action(console: AlternatorConsole) -> bool:
        console.enable.toggle(enabled)
        await console.enable.wait_idle()
        return console.enable.confirmed is enabled

    return _action


def _save_config(args: argparse.Namespace) -> Callable[[AlternatorConsole], Awaitable[bool]]:
    edits = {
        "target_voltage": args.target_voltage,
        "current_limit": args.current_limit,
        "float_voltage": args.float_voltage,
        "derate_temp": args.derate_temp,
        "can_input": args.can_input,
    }

    async def _action(console: AlternatorConsole) -> bool:
        # Unedited fields keep the values the device reports.
        if not await console.config_sync.load():
            return False
        for key, value in edits.items():
            if value is not None:
                console.config_sync.edit(key, value)
        if not console.config_sync.dirty_keys():
            LOGGER.info("No configuration changes to save")
            return True
        return await console.config_sync.save()

    return _action


def _submit_network(args: argparse.Namespace) -> Callable[[AlternatorConsole], Awaitable[bool]]:
    async def _action(console: AlternatorConsole) -> bool:
        console.network.set_ssid(args.ssid)
        console.network.set_password(args.password)
        return await console.network.submit()

    return _action


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.url:
        url = args.url.strip()
        if "://" not in url:
            url = f"http://{url}"
        config.device.url = url.rstrip("/")
        config.raw.set("device", "url", config.device.url)

    if args.command == "start":
        AlternatorConsole.launch(config)
        return 0

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    configure_logging(config.logging.level, log_network=config.logging.log_network)

    if args.command == "status":
        return _run_once(config, _print_status)

    if args.command == "log":
        return _run_once(config, _print_log)

    if args.command == "enable":
        return _run_once(config, _set_enable(args.state == "on"))

    if args.command == "save-config":
        return _run_once(config, _save_config(args))

    if args.command == "network":
        return _run_once(config, _submit_network(args))

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
