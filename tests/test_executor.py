"""
Tests for the IPMI Executor module
"""

import pytest
import subprocess
from unittest.mock import Mock, patch

from ipmifan.ipmi.executor import (
    Executor,
    IPMIToolExecutor,
    IPMIError,
    IPMILaunchError,
    IPMICommandError,
    IPMIConnectionError,
    format_hex_byte,
    parse_hex_byte,
)

MOCK_SDR_OUTPUT = b"""Temp_CPU0                | 35 degrees C      | ok
Fan_SYS0_1               | 8700 RPM          | ok
"""


@pytest.fixture
def executor():
    """Create a local IPMIToolExecutor"""
    return IPMIToolExecutor()


def ok(stdout: bytes = b"") -> Mock:
    return Mock(stdout=stdout, stderr=b"", returncode=0)


class TestHexBytes:
    """Test raw byte literal formatting"""

    def test_two_digit_lowercase(self):
        assert format_hex_byte(0) == "0x00"
        assert format_hex_byte(4) == "0x04"
        assert format_hex_byte(10) == "0x0a"
        assert format_hex_byte(171) == "0xab"
        assert format_hex_byte(255) == "0xff"

    def test_round_trip_all_bytes(self):
        for value in range(256):
            text = format_hex_byte(value)
            assert len(text) == 4
            assert parse_hex_byte(text) == value

    def test_wide_values_not_truncated(self):
        assert format_hex_byte(300) == "0x12c"


class TestExecute:
    """Test the generic execute primitive"""

    def test_returns_stdout(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = ok(MOCK_SDR_OUTPUT)
            result = executor.execute("ipmitool", ["sdr", "list", "full"])
            assert result == MOCK_SDR_OUTPUT.decode()
            assert mock_run.call_args[0][0] == ["ipmitool", "sdr", "list", "full"]

    def test_invalid_utf8_is_replaced(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = ok(b"Temp_CPU0 \xff\xfe | 30 degrees C")
            result = executor.execute("ipmitool", ["sdr"])
            assert "�" in result
            assert result.endswith("30 degrees C")

    def test_non_zero_exit(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.CalledProcessError(
                1, ["ipmitool"], output=b"", stderr=b"permission denied\n"
            )
            with pytest.raises(IPMICommandError) as exc_info:
                executor.execute("ipmitool", ["sdr"])

            error = exc_info.value
            assert error.returncode == 1
            assert error.stderr == "permission denied\n"
            assert "status 1" in str(error)
            assert "permission denied" in str(error)
            assert not isinstance(error, IPMIConnectionError)

    def test_session_failure(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.CalledProcessError(
                1, ["ipmitool"], stderr=b"Error in open session response message"
            )
            with pytest.raises(IPMIConnectionError) as exc_info:
                executor.execute("ipmitool", ["sdr"])
            assert isinstance(exc_info.value, IPMICommandError)

    def test_missing_binary(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError(2, "No such file or directory", "ipmitool")
            with pytest.raises(IPMILaunchError) as exc_info:
                executor.execute("ipmitool", ["sdr"])

            error = exc_info.value
            assert isinstance(error.__cause__, FileNotFoundError)
            assert not isinstance(error, IPMICommandError)
            assert "ipmitool" in str(error)

    def test_permission_denied_on_launch(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = PermissionError(13, "Permission denied")
            with pytest.raises(IPMILaunchError):
                executor.execute("/usr/bin/ipmitool", ["sdr"])

    def test_no_retry(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.CalledProcessError(1, ["ipmitool"], stderr=b"busy")
            with pytest.raises(IPMIError):
                executor.execute("ipmitool", ["sdr"])
            assert mock_run.call_count == 1


class TestIPMIToolCommands:
    """Test the argument vectors sent to ipmitool"""

    def test_fan_temp_dump(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = ok(MOCK_SDR_OUTPUT)
            assert executor.run_fan_temp_dump() == MOCK_SDR_OUTPUT.decode()
            assert mock_run.call_args[0][0] == ["ipmitool", "sdr", "list", "full"]

    def test_cpu_temp_dump(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = ok()
            executor.run_cpu_temp_dump()
            assert mock_run.call_args[0][0] == ["ipmitool", "sdr", "type", "Temperature"]

    def test_raw_command(self, executor):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = ok()
            assert executor.run_raw_command(3, 10) is None
            assert mock_run.call_args[0][0] == [
                "ipmitool", "raw", "0x30", "0x30", "0x02", "0x03", "0x0a"
            ]

    def test_sudo(self):
        executor = IPMIToolExecutor(sudo=True)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = ok()
            executor.run_cpu_temp_dump()
            assert mock_run.call_args[0][0] == [
                "sudo", "ipmitool", "sdr", "type", "Temperature"
            ]

    def test_remote_host(self):
        executor = IPMIToolExecutor(host="10.0.0.5", username="admin", password="secret")
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = ok()
            executor.run_fan_temp_dump()
            assert mock_run.call_args[0][0] == [
                "ipmitool", "-I", "lanplus", "-H", "10.0.0.5",
                "-U", "admin", "-P", "secret", "sdr", "list", "full"
            ]

    def test_remote_password_not_in_error(self):
        executor = IPMIToolExecutor(host="10.0.0.5", password="secret")
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.CalledProcessError(1, ["ipmitool"], stderr=b"failed")
            with pytest.raises(IPMICommandError) as exc_info:
                executor.run_fan_temp_dump()
            assert "secret" not in str(exc_info.value)
            assert "****" in exc_info.value.command

    def test_from_config(self):
        executor = IPMIToolExecutor.from_config({
            "ipmi": {"program": "/opt/ipmitool", "sudo": True, "host": "bmc.local"}
        })
        assert executor.program == "/opt/ipmitool"
        assert executor.sudo is True
        assert executor.host == "bmc.local"
        assert executor.interface == "lanplus"

    def test_executor_is_abstract(self):
        with pytest.raises(TypeError):
            Executor()
