"""
Drive health collector.

Enumerates drives, runs smartctl against each one and parses its text output
into DriveRecords. Usage figures come from the mounted partitions of each
drive.
"""

from __future__ import annotations

import re
from typing import Any

import psutil

from server_agent.collectors.base import BaseCollector
from server_agent.errors import ErrorKind
from server_agent.models import DriveRecord

# smartctl exit status bits 0 and 1: command line did not parse, device open failed.
# Higher bits describe the drive and come with usable output.
SMARTCTL_FATAL_MASK = 0b11

# (line prefix, raw_values key, whitespace field index)
NVME_ATTRIBUTES: tuple[tuple[str, str, int], ...] = (
    ("Temperature:", "Temperature_Celsius", 1),
    ("Data Units Read:", "Data_Units_Read", 3),
    ("Data Units Written:", "Data_Units_Written", 3),
    ("Percentage Used:", "Percentage_Used", 2),
    ("Available Spare:", "Available_Spare", 2),
    ("Power Cycles:", "Power_Cycles", 2),
    ("Power On Hours:", "Power_On_Hours", 3),
    ("Unsafe Shutdowns:", "Unsafe_Shutdowns", 2),
    ("Media and Data Integrity Errors:", "Media_Errors", 5),
    ("Error Information Log Entries:", "Error_Log_Entries", 4),
    ("Critical Warning:", "Critical_Warning", 2),
)

SERIAL_PREFIXES = ("Serial Number:", "Serial number:")
MODEL_PREFIXES = ("Device Model:", "Model Number:", "Product:")


def clean_number(value: str) -> str:
    """Strip thousands separators, e.g. '12.345.678' -> '12345678'."""
    return value.replace(".", "").replace(",", "")


def is_partition_of(device: str, drive: str) -> bool:
    """
    True if `device` is `drive` itself or one of its partitions.

    /dev/sda owns /dev/sda1 but not /dev/sdaa1. A drive name ending in a
    digit only owns "p<N>" or "n<N>" suffixes, so /dev/sda1 does not own
    /dev/sda10 and /dev/nvme1 does not own /dev/nvme10n1p1.
    """
    if device == drive:
        return True
    if not device.startswith(drive):
        return False
    suffix = device[len(drive):]
    if drive[-1:].isdigit():
        return re.fullmatch(r"p\d+|n\d+(p\d+)?", suffix) is not None
    return re.fullmatch(r"\d+", suffix) is not None


def parse_scan_output(output: str) -> list[str]:
    """Return device paths from `smartctl --scan` output."""
    devices = []
    for line in output.splitlines():
        if line.startswith("/dev/"):
            fields = line.split()
            if fields:
                devices.append(fields[0])
    return devices


def parse_health(drive: DriveRecord, output: str) -> None:
    """
    Apply the overall health verdict from `smartctl -H` output.

    FAILED wins over PASSED; without either marker the status is left alone.
    """
    for line in output.splitlines():
        if "FAILED" in line:
            drive.mark_failing()
            drive.raw_values["SMART_Health"] = "FAILED"
        elif "PASSED" in line:
            drive.mark_ok()
            if not drive.failing:
                drive.raw_values["SMART_Health"] = "PASSED"
        elif line.startswith("SMART Health Status:") and line.split(":", 1)[1].strip() == "OK":
            drive.mark_ok()
            if not drive.failing:
                drive.raw_values["SMART_Health"] = "OK"


def parse_info(drive: DriveRecord, output: str) -> None:
    """Pick the serial number and model out of `smartctl -i` output."""
    for line in output.splitlines():
        if line.startswith(SERIAL_PREFIXES):
            drive.serial = line.split(":", 1)[1].strip()
        elif line.startswith(MODEL_PREFIXES):
            drive.raw_values["Model"] = line.split(":", 1)[1].strip()


def parse_attributes(drive: DriveRecord, output: str) -> None:
    """
    Parse `smartctl -A` output.

    NVMe drives print "Name: value" lines matched by prefix. ATA drives print
    an attribute table whose rows start with a numeric ID and end in the raw
    value.
    """
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 2:
            continue

        for prefix, key, index in NVME_ATTRIBUTES:
            if line.startswith(prefix):
                if index < len(fields):
                    _store_attribute(drive, key, fields[index])
                break
        else:
            if len(fields) >= 10 and fields[0].isdigit():
                _store_ata_row(drive, fields)


def _store_attribute(drive: DriveRecord, key: str, value: str) -> None:
    if key == "Temperature_Celsius":
        try:
            temp = int(value)
        except ValueError:
            return
        drive.temp = temp
        drive.raw_values[key] = str(temp)
    elif key == "Critical_Warning":
        drive.raw_values[key] = value
        try:
            if int(value, 16) != 0:
                drive.mark_failing()
        except ValueError:
            pass
    else:
        drive.raw_values[key] = clean_number(value.rstrip("%"))


def _store_ata_row(drive: DriveRecord, fields: list[str]) -> None:
    # ID# ATTRIBUTE_NAME FLAG VALUE WORST THRESH TYPE UPDATED WHEN_FAILED RAW_VALUE
    name, when_failed, raw = fields[1], fields[8], fields[9]
    drive.raw_values[name] = raw
    if name in ("Temperature_Celsius", "Airflow_Temperature_Cel") and drive.temp < 0:
        try:
            drive.temp = int(raw)
        except ValueError:
            pass
    if when_failed == "FAILING_NOW":
        drive.mark_failing()


class DriveCollector(BaseCollector):
    """Collects SMART health and usage for every drive."""

    name = "drives"
    description = "Drive SMART health, temperature and usage"

    def collect(self) -> dict[str, Any]:
        """Collect drive information."""
        return {"drives": [drive.to_dict() for drive in self.collect_drives()]}

    def collect_drives(self) -> list[DriveRecord]:
        """
        Build one DriveRecord per enumerated device.

        A device that cannot be queried still yields a record; the failure
        is kept on `errors` and the remaining devices are processed.
        """
        drives = []

        for device in self.list_devices():
            drive = DriveRecord(name=device)
            try:
                self._get_smart_data(drive)
            except Exception as e:
                self.record_error(
                    ErrorKind.TOOL, f"Error getting SMART data for drive {device}: {e}"
                )
            drives.append(drive)
            self.logger.debug(f"Drive {device}: status={drive.status}")

        self._apply_usage(drives)
        return drives

    def list_devices(self) -> list[str]:
        """Enumerate devices using the configured strategy."""
        if self.config.drive_enumeration == "partitions":
            return self._list_partition_devices()
        return self._list_scan_devices()

    def _list_scan_devices(self) -> list[str]:
        """Ask smartctl which devices it can scan."""
        output = self._smartctl("--scan")
        if output is None:
            return []
        return parse_scan_output(output)

    def _list_partition_devices(self) -> list[str]:
        """Use mounted partitions as the device list."""
        try:
            partitions = psutil.disk_partitions(all=False)
        except Exception as e:
            self.record_error(ErrorKind.TELEMETRY, f"Failed to list partitions: {e}")
            return []

        devices: list[str] = []
        for part in partitions:
            if part.device and part.device not in devices:
                devices.append(part.device)
        return devices

    def _get_smart_data(self, drive: DriveRecord) -> None:
        """Fill health, identity and attributes from smartctl."""
        health = self._smartctl("-H", drive.name)
        if health is None:
            return
        parse_health(drive, health)

        info = self._smartctl("-i", drive.name)
        if info is not None:
            parse_info(drive, info)

        attributes = self._smartctl("-A", drive.name)
        if attributes is not None:
            parse_attributes(drive, attributes)

    def _smartctl(self, *args: str) -> str | None:
        """Run smartctl, returning stdout or None when the invocation failed."""
        cmd = [self.config.smartctl_path, *args]
        stdout, stderr, rc = self.run_command(cmd, timeout=self.config.smartctl_timeout)

        if rc < 0 or rc & SMARTCTL_FATAL_MASK:
            detail = (stderr or stdout).strip().splitlines()
            reason = detail[-1] if detail else "no output"
            self.record_error(
                ErrorKind.TOOL,
                f"Error executing {' '.join(cmd)} (exit {rc}): {reason}",
            )
            return None

        return stdout

    def _apply_usage(self, drives: list[DriveRecord]) -> None:
        """Sum partition usage into each drive, matching partitions by device path."""
        if not drives:
            return

        try:
            partitions = psutil.disk_partitions(all=False)
        except Exception as e:
            self.record_error(ErrorKind.TELEMETRY, f"Failed to list partitions: {e}")
            return

        usage_by_device: dict[str, tuple[int, int]] = {}
        for part in partitions:
            # Bind mounts repeat a device; count it once
            if part.device in usage_by_device:
                continue
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except (PermissionError, OSError) as e:
                self.logger.debug(f"Could not get usage for {part.mountpoint}: {e}")
                continue
            usage_by_device[part.device] = (usage.total, usage.used)

        for drive in drives:
            total = used = 0
            for device, (part_total, part_used) in usage_by_device.items():
                if is_partition_of(device, drive.name):
                    total += part_total
                    used += part_used
            if total > 0:
                drive.size = total
                drive.used_bytes = used
                drive.used_percent = round(used / total * 100, 2)
