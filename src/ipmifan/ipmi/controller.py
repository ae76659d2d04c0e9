"""
Sensor Controller Module

This module turns raw ipmitool sensor dumps into domain values and a fan
speed request into the sequence of raw duty commands the BMC expects.
"""

import logging
import re

from .executor import (
    Executor,
    SensorNotFoundError,
    SensorParseError,
    format_hex_byte,
)

logger = logging.getLogger(__name__)

# "fan" must start the line; "temp" may appear anywhere, not only in the
# name column.
FAN_TEMP_PATTERN = re.compile(r"^fan|temp", re.IGNORECASE)
DEGREES_PATTERN = re.compile(r"(\d+)\sdegrees", re.IGNORECASE)
# Records end at "\n", with an optional "\r" before it
LINE_SEPARATOR = re.compile(r"\r?\n")

CPU_SENSOR_PREFIX = "temp_cpu0"
UINT16_MAX = 0xFFFF


class SensorController:
    """Sensor queries and fan actuation on top of an Executor"""

    def __init__(self, executor: Executor):
        """Initialize controller

        Args:
            executor: Executor used for every hardware call
        """
        self.executor = executor

    def get_info_fan_temp(self) -> str:
        """Get the fan and temperature lines of the full sensor listing.

        Lines keep their original order and each one is newline terminated.
        Lines that merely mention "temp" outside the sensor name are kept
        as well.

        Returns:
            Filtered sensor report, empty if nothing matched

        Raises:
            IPMIError: If the sensor listing could not be retrieved

        Example:
            >>> print(controller.get_info_fan_temp(), end="")
            Temp_CPU0                | 35 degrees C      | ok
            Fan_SYS0_1               | 8700 RPM          | ok
        """
        output = self.executor.run_fan_temp_dump()

        lines = [line for line in LINE_SEPARATOR.split(output) if FAN_TEMP_PATTERN.search(line)]
        logger.debug(f"Kept {len(lines)} fan/temperature lines")
        return "".join(line + "\n" for line in lines)

    def get_cpu_temperature(self) -> int:
        """Get the CPU0 temperature in degrees Celsius.

        Only the first record whose name starts with "Temp_CPU0" (any case)
        is considered. The reading is the run of digits right before
        "degrees" on that line; fractional readings such as "45.000 degrees"
        yield the digits after the decimal point.

        Returns:
            Temperature as an unsigned 16-bit integer

        Raises:
            SensorNotFoundError: If no CPU0 record exists, or it has no reading
            SensorParseError: If the reading is not ASCII digits or does not
                fit in 16 bits
            IPMIError: If the temperature listing could not be retrieved
        """
        output = self.executor.run_cpu_temp_dump()

        line = next(
            (x for x in LINE_SEPARATOR.split(output) if x.lower().startswith(CPU_SENSOR_PREFIX)),
            None,
        )
        if line is None:
            logger.warning(f"No {CPU_SENSOR_PREFIX} record in temperature listing")
            raise SensorNotFoundError(CPU_SENSOR_PREFIX)

        match = DEGREES_PATTERN.search(line)
        if match is None:
            logger.warning(f"No temperature reading in line: {line.strip()}")
            raise SensorNotFoundError(CPU_SENSOR_PREFIX)

        digits = match.group(1)
        try:
            if not digits.isascii():
                raise ValueError("non-ASCII digits")
            temperature = int(digits)
            if temperature > UINT16_MAX:
                raise ValueError(f"{temperature} exceeds {UINT16_MAX}")
        except ValueError as e:
            raise SensorParseError(CPU_SENSOR_PREFIX, digits, str(e)) from e

        logger.debug(f"CPU0 temperature: {temperature}°C")
        return temperature

    def set_fan_speed(self, fan_count: int, speed: int) -> None:
        """Set the duty cycle of fans 0 through fan_count inclusive.

        One raw command is issued per fan, in increasing index order, so
        fan_count + 1 commands are sent in total. Neither argument is range
        checked; speed is passed to the BMC as a raw duty byte.

        The sequence is not atomic. On the first failing command the error is
        raised and the remaining fans are left untouched, while fans already
        commanded keep their new duty cycle. Nothing is rolled back.

        Args:
            fan_count: Highest fan index to command
            speed: Duty value, normally a percentage (0-100)

        Raises:
            IPMIError: From the first raw command that fails

        Examples:
            >>> controller.set_fan_speed(4, 10)  # fans 0x00..0x04 -> 0x0a
        """
        for fan_index in range(fan_count + 1):
            logger.debug(
                f"Setting fan {format_hex_byte(fan_index)} duty to {format_hex_byte(speed)}"
            )
            self.executor.run_raw_command(fan_index, speed)

        logger.info(f"Fan speed set to {speed} on fans 0-{fan_count}")
