"""
IPMI Communication Package for ipmifan

This package splits IPMI access into two layers:

- Executor: runs ipmitool and hands back raw text (IPMIToolExecutor is the
  subprocess implementation)
- SensorController: interprets sensor dumps and turns a fan speed request
  into raw duty commands, on top of any Executor

Example Usage:
    >>> from ipmifan.ipmi import IPMIToolExecutor, SensorController
    >>>
    >>> controller = SensorController(IPMIToolExecutor())
    >>> print(controller.get_info_fan_temp())
    >>> controller.get_cpu_temperature()
    36
    >>> controller.set_fan_speed(4, 30)  # fans 0..4

Note:
    This package requires ipmitool on PATH and usually root access.
"""

from .executor import (
    Executor,
    IPMIToolExecutor,
    IPMIError,
    IPMILaunchError,
    IPMICommandError,
    IPMIConnectionError,
    SensorNotFoundError,
    SensorParseError,
    format_hex_byte,
    parse_hex_byte,
)
from .controller import SensorController

__all__ = [
    'Executor',
    'IPMIToolExecutor',
    'SensorController',
    'IPMIError',
    'IPMILaunchError',
    'IPMICommandError',
    'IPMIConnectionError',
    'SensorNotFoundError',
    'SensorParseError',
    'format_hex_byte',
    'parse_hex_byte',
]
