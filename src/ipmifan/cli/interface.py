"""
Command Line Interface Module

This module provides one-shot commands for reading sensors and
setting fan speeds through ipmitool.
"""

import argparse
import logging
import sys
from typing import List, Optional

from ..config import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..ipmi import IPMIError, IPMIToolExecutor, SensorController

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _parse_int(value: str) -> int:
    """Parse a decimal or 0x-prefixed integer argument"""
    try:
        return int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}")


class CLI:
    """Command-line interface handler"""

    def __init__(self, controller: Optional[SensorController] = None):
        """Initialize CLI handler

        Args:
            controller: Controller to use instead of one built from config
        """
        self.parser = self._create_parser()
        self.controller = controller

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create command-line argument parser

        Returns:
            Configured argument parser
        """
        parser = argparse.ArgumentParser(
            prog="ipmifan",
            description="ipmifan - IPMI sensor readout and fan duty control"
        )

        parser.add_argument(
            "-c", "--config",
            help="Path to configuration file",
            default=DEFAULT_CONFIG_PATH
        )

        parser.add_argument(
            "--debug",
            action="store_true",
            help="Enable debug logging"
        )

        subparsers = parser.add_subparsers(dest="command", required=True)

        subparsers.add_parser(
            "info",
            help="Show fan and temperature sensors"
        )

        subparsers.add_parser(
            "cpu-temp",
            help="Show CPU0 temperature in degrees Celsius"
        )

        speed_parser = subparsers.add_parser(
            "set-speed",
            help="Set fan duty cycle"
        )
        speed_parser.add_argument(
            "speed",
            type=_parse_int,
            metavar="SPEED",
            help="Duty value, decimal or 0x hex (normally 0-100)"
        )
        speed_parser.add_argument(
            "--fans",
            type=_parse_int,
            metavar="N",
            help="Highest fan index to set; fans 0..N are commanded "
                 "(default: fans.count from config)"
        )

        return parser

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI interface

        Args:
            argv: Arguments to parse instead of sys.argv

        Returns:
            Process exit status
        """
        args = self.parser.parse_args(argv)

        if args.debug:
            logging.getLogger("ipmifan").setLevel(logging.DEBUG)

        try:
            config = load_config(args.config)
            if self.controller is None:
                self.controller = SensorController(IPMIToolExecutor.from_config(config))

            if args.command == "info":
                print(self.controller.get_info_fan_temp(), end="")
            elif args.command == "cpu-temp":
                print(self.controller.get_cpu_temperature())
            elif args.command == "set-speed":
                fans = args.fans if args.fans is not None else config["fans"]["count"]
                self.controller.set_fan_speed(fans, args.speed)
                print(f"Fans 0-{fans} set to {args.speed}")

        except (IPMIError, ConfigError) as e:
            logger.error(f"{args.command} failed: {e}")
            return 1

        return 0


def main() -> None:
    """Main entry point"""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    sys.exit(CLI().run())


if __name__ == "__main__":
    main()
