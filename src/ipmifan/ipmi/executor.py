"""
IPMI Command Execution Module

This module wraps ipmitool behind a small Executor interface. An Executor
runs one command per call and returns its raw text output; interpreting that
text is left to SensorController.
"""

import abc
import logging
import subprocess
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

# Supermicro OEM raw command for setting a single fan's duty cycle.
# The fan index and duty byte are appended.
FAN_DUTY_PREFIX = ["0x30", "0x30", "0x02"]

# stderr markers ipmitool prints when no session could be opened
SESSION_ERRORS = ("Error in open session", "Unable to establish")


class IPMIError(Exception):
    """Base exception for IPMI-related errors"""
    pass


class IPMILaunchError(IPMIError):
    """Raised when the management tool cannot be started at all"""

    def __init__(self, command: Sequence[str], reason: OSError):
        self.command = list(command)
        self.reason = reason
        super().__init__(f"Failed to launch {' '.join(self.command)}: {reason}")


class IPMICommandError(IPMIError):
    """Raised when the management tool exits with a non-zero status"""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"Command {' '.join(self.command)} failed with status {returncode}: {stderr.strip()}"
        )


class IPMIConnectionError(IPMICommandError):
    """Raised when ipmitool could not open a session with the BMC"""
    pass


class SensorNotFoundError(IPMIError):
    """Raised when an expected sensor record is missing from the output"""

    def __init__(self, sensor: str):
        self.sensor = sensor
        super().__init__(f"Sensor {sensor} not found")


class SensorParseError(IPMIError):
    """Raised when a sensor value cannot be parsed as a number"""

    def __init__(self, sensor: str, text: str, reason: str):
        self.sensor = sensor
        self.text = text
        super().__init__(f"Failed to parse {sensor} value {text!r}: {reason}")


def format_hex_byte(value: int) -> str:
    """Format a value as an ipmitool raw byte literal.

    The result always carries the 0x prefix and at least two lowercase hex
    digits. Values above 0xff are not truncated.

    Examples:
        >>> format_hex_byte(10)
        '0x0a'
        >>> format_hex_byte(255)
        '0xff'
    """
    return f"{value:#04x}"


def parse_hex_byte(text: str) -> int:
    """Parse a raw byte literal produced by format_hex_byte"""
    return int(text, 16)


def _redact(command: Sequence[str]) -> List[str]:
    """Mask the value following ipmitool's -P option"""
    redacted = list(command)
    for i, arg in enumerate(redacted[:-1]):
        if arg == "-P":
            redacted[i + 1] = "****"
    return redacted


def _decode(data: Optional[bytes]) -> str:
    if data is None:
        return ""
    return data.decode("utf-8", errors="replace")


class Executor(abc.ABC):
    """Runs management tool queries and returns their raw output.

    Implementations must run exactly one external command per call and must
    not retry. SensorController only talks to hardware through this
    interface, so a fake returning canned text can stand in for ipmitool.
    """

    @abc.abstractmethod
    def run_fan_temp_dump(self) -> str:
        """Return the full sensor data repository listing"""

    @abc.abstractmethod
    def run_cpu_temp_dump(self) -> str:
        """Return the listing of sensors of type Temperature"""

    @abc.abstractmethod
    def run_raw_command(self, fan_index: int, duty: int) -> None:
        """Set the duty cycle of a single fan"""

    def execute(self, program: str, args: Sequence[str]) -> str:
        """Run a program and return its standard output.

        The call blocks until the program exits; there is no timeout. Output
        is decoded as UTF-8 with invalid bytes replaced.

        Args:
            program: Executable name or path
            args: Arguments passed to the program

        Returns:
            Captured standard output

        Raises:
            IPMILaunchError: If the program could not be started
            IPMIConnectionError: If ipmitool could not open a BMC session
            IPMICommandError: If the program exited with a non-zero status
        """
        full_cmd = [program] + list(args)
        shown_cmd = _redact(full_cmd)
        logger.debug(f"Executing: {' '.join(shown_cmd)}")

        try:
            result = subprocess.run(full_cmd, capture_output=True, check=True)
        except subprocess.CalledProcessError as e:
            stderr = _decode(e.stderr)
            logger.error(f"Command failed with status {e.returncode}: {stderr.strip()}")
            if any(marker in stderr for marker in SESSION_ERRORS):
                raise IPMIConnectionError(shown_cmd, e.returncode, stderr) from e
            raise IPMICommandError(shown_cmd, e.returncode, stderr) from e
        except OSError as e:
            logger.error(f"Could not launch {program}: {e}")
            raise IPMILaunchError(shown_cmd, e) from e

        return _decode(result.stdout)


class IPMIToolExecutor(Executor):
    """Executor backed by the ipmitool binary"""

    def __init__(self, program: str = "ipmitool", host: str = "localhost",
                 username: str = "ADMIN", password: str = "ADMIN",
                 interface: str = "lanplus", sudo: bool = False):
        """Initialize executor with connection details

        Args:
            program: ipmitool executable
            host: IPMI host address; "localhost" uses the in-band interface
            username: IPMI username for remote hosts
            password: IPMI password for remote hosts
            interface: IPMI interface type for remote hosts
            sudo: Run ipmitool through sudo
        """
        self.program = program
        self.host = host
        self.username = username
        self.password = password
        self.interface = interface
        self.sudo = sudo

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "IPMIToolExecutor":
        """Build an executor from the "ipmi" section of a loaded config"""
        ipmi = config.get("ipmi") or {}
        return cls(
            program=ipmi.get("program", "ipmitool"),
            host=ipmi.get("host", "localhost"),
            username=ipmi.get("username", "ADMIN"),
            password=ipmi.get("password", "ADMIN"),
            interface=ipmi.get("interface", "lanplus"),
            sudo=bool(ipmi.get("sudo", False)),
        )

    def _command(self, args: List[str]) -> str:
        if self.host == "localhost":
            base_args = []
        else:
            base_args = [
                "-I", self.interface,
                "-H", self.host,
                "-U", self.username,
                "-P", self.password,
            ]

        if self.sudo:
            return self.execute("sudo", [self.program] + base_args + args)
        return self.execute(self.program, base_args + args)

    def run_fan_temp_dump(self) -> str:
        return self._command(["sdr", "list", "full"])

    def run_cpu_temp_dump(self) -> str:
        return self._command(["sdr", "type", "Temperature"])

    def run_raw_command(self, fan_index: int, duty: int) -> None:
        self._command(
            ["raw"] + FAN_DUTY_PREFIX + [format_hex_byte(fan_index), format_hex_byte(duty)]
        )
