"""
Pytest fixtures and configuration for Server Agent tests.

Provides canned smartctl output, psutil readings and HTTP response mocks
shared across the test suite.
"""

from __future__ import annotations

from collections import namedtuple
from unittest.mock import MagicMock

import pytest

from server_agent.config import Config

sdiskpart = namedtuple("sdiskpart", ["device", "mountpoint", "fstype", "opts"])
sdiskusage = namedtuple("sdiskusage", ["total", "used", "free", "percent"])
snetio = namedtuple("snetio", ["bytes_sent", "bytes_recv", "packets_sent", "packets_recv"])
svmem = namedtuple("svmem", ["total", "available", "percent", "used", "free"])
scpufreq = namedtuple("scpufreq", ["current", "min", "max"])
shwtemp = namedtuple("shwtemp", ["label", "current", "high", "critical"])


# Test Data Fixtures - smartctl outputs
@pytest.fixture
def sample_scan_output():
    """Sample output from smartctl --scan."""
    return """/dev/sda -d scsi # /dev/sda, SCSI device
/dev/nvme0 -d nvme # /dev/nvme0, NVMe device
"""


@pytest.fixture
def sample_ata_health_passed():
    """Sample output from smartctl -H on a healthy SATA drive."""
    return """smartctl 7.3 2022-02-28 r5338 [x86_64-linux-6.5.0] (local build)
Copyright (C) 2002-22, Bruce Allen, Christian Franke, www.smartmontools.org

=== START OF READ SMART DATA SECTION ===
SMART overall-health self-assessment test result: PASSED

"""


@pytest.fixture
def sample_ata_health_failed():
    """Sample output from smartctl -H on a failing SATA drive."""
    return """smartctl 7.3 2022-02-28 r5338 [x86_64-linux-6.5.0] (local build)
Copyright (C) 2002-22, Bruce Allen, Christian Franke, www.smartmontools.org

=== START OF READ SMART DATA SECTION ===
SMART overall-health self-assessment test result: FAILED!
Drive failure expected in less than 24 hours. SAVE ALL DATA.
"""


@pytest.fixture
def sample_ata_info():
    """Sample output from smartctl -i on a SATA drive."""
    return """smartctl 7.3 2022-02-28 r5338 [x86_64-linux-6.5.0] (local build)

=== START OF INFORMATION SECTION ===
Model Family:     Samsung based SSDs
Device Model:     Samsung SSD 860 EVO 500GB
Serial Number:    S3Z1NB0K123456A
LU WWN Device Id: 5 002538 e40a1b2c3
Firmware Version: RVT02B6Q
User Capacity:    500.107.862.016 bytes [500 GB]
"""


@pytest.fixture
def sample_ata_attributes():
    """Sample output from smartctl -A on a SATA drive."""
    return """smartctl 7.3 2022-02-28 r5338 [x86_64-linux-6.5.0] (local build)

=== START OF READ SMART DATA SECTION ===
SMART Attributes Data Structure revision number: 1
Vendor Specific SMART Attributes with Thresholds:
ID# ATTRIBUTE_NAME          FLAG     VALUE WORST THRESH TYPE      UPDATED  WHEN_FAILED RAW_VALUE
  5 Reallocated_Sector_Ct   0x0033   100   100   010    Pre-fail  Always       -       0
  9 Power_On_Hours          0x0032   095   095   000    Old_age   Always       -       21843
 12 Power_Cycle_Count       0x0032   099   099   000    Old_age   Always       -       512
194 Temperature_Celsius     0x0022   064   049   000    Old_age   Always       -       36 (Min/Max 20/51)
241 Total_LBAs_Written      0x0032   099   099   000    Old_age   Always       -       40123456789
"""


@pytest.fixture
def sample_nvme_health():
    """Sample output from smartctl -H on an NVMe drive."""
    return """smartctl 7.3 2022-02-28 r5338 [x86_64-linux-6.5.0] (local build)

=== START OF SMART DATA SECTION ===
SMART overall-health self-assessment test result: PASSED

"""


@pytest.fixture
def sample_nvme_info():
    """Sample output from smartctl -i on an NVMe drive."""
    return """=== START OF INFORMATION SECTION ===
Model Number:                       Samsung SSD 970 EVO Plus 1TB
Serial Number:                      S4EWNX0R987654Z
Firmware Version:                   2B2QEXM7
"""


@pytest.fixture
def sample_nvme_attributes():
    """Sample output from smartctl -A on an NVMe drive (healthy)."""
    return """smartctl 7.3 2022-02-28 r5338 [x86_64-linux-6.5.0] (local build)

=== START OF SMART DATA SECTION ===
SMART/Health Information (NVMe Log 0x02)
Critical Warning:                   0x00
Temperature:                        38 Celsius
Available Spare:                    100%
Available Spare Threshold:          10%
Percentage Used:                    3%
Data Units Read:                    12.345.678 [6,32 TB]
Data Units Written:                 9.876.543 [5,05 TB]
Host Read Commands:                 123.456.789
Host Write Commands:                98.765.432
Controller Busy Time:               1.234
Power Cycles:                       1.024
Power On Hours:                     8.760
Unsafe Shutdowns:                   57
Media and Data Integrity Errors:    0
Error Information Log Entries:      12
Warning  Comp. Temperature Time:    0
Critical Comp. Temperature Time:    0
Temperature Sensor 1:               38 Celsius
"""


@pytest.fixture
def sample_nvme_attributes_critical(sample_nvme_attributes):
    """NVMe attributes with the spare-below-threshold critical warning bit set."""
    return sample_nvme_attributes.replace(
        "Critical Warning:                   0x00", "Critical Warning:                   0x01"
    )


@pytest.fixture
def make_smartctl_runner():
    """
    Factory for run_command replacements answering from a table.

    Keys are the smartctl arguments (without the binary); unknown commands
    behave like a device open failure (exit status bit 1).
    """

    def factory(responses: dict[tuple[str, ...], tuple[str, str, int]]):
        def run_command(cmd, timeout=30):
            return responses.get(tuple(cmd[1:]), ("", "Smartctl open device failed", 2))

        return run_command

    return factory


@pytest.fixture
def smartctl_responses(
    sample_scan_output,
    sample_ata_health_passed,
    sample_ata_info,
    sample_ata_attributes,
    sample_nvme_health,
    sample_nvme_info,
    sample_nvme_attributes,
):
    """smartctl answers for one healthy SATA drive and one healthy NVMe drive."""
    return {
        ("--scan",): (sample_scan_output, "", 0),
        ("-H", "/dev/sda"): (sample_ata_health_passed, "", 0),
        ("-i", "/dev/sda"): (sample_ata_info, "", 0),
        ("-A", "/dev/sda"): (sample_ata_attributes, "", 0),
        ("-H", "/dev/nvme0"): (sample_nvme_health, "", 0),
        ("-i", "/dev/nvme0"): (sample_nvme_info, "", 0),
        ("-A", "/dev/nvme0"): (sample_nvme_attributes, "", 0),
    }


# psutil Fixtures
@pytest.fixture
def mock_partitions():
    """Mounted partitions of the two sample drives."""
    return [
        sdiskpart("/dev/sda1", "/", "ext4", "rw,relatime"),
        sdiskpart("/dev/sda2", "/home", "ext4", "rw,relatime"),
        sdiskpart("/dev/nvme0n1p1", "/data", "xfs", "rw,relatime"),
    ]


@pytest.fixture
def mock_disk_usage():
    """disk_usage replacement keyed by mountpoint."""
    usages = {
        "/": sdiskusage(100 * 1024**3, 40 * 1024**3, 60 * 1024**3, 40.0),
        "/home": sdiskusage(300 * 1024**3, 60 * 1024**3, 240 * 1024**3, 20.0),
        "/data": sdiskusage(1000 * 1024**3, 250 * 1024**3, 750 * 1024**3, 25.0),
    }
    return lambda mountpoint: usages[mountpoint]


@pytest.fixture
def mock_system_psutil():
    """A psutil stand-in returning nominal CPU, memory and network readings."""
    mock = MagicMock()
    mock.cpu_count.side_effect = lambda logical=True: 16 if logical else 8
    mock.cpu_freq.return_value = scpufreq(3600.0, 800.0, 4800.0)
    mock.cpu_percent.return_value = 12.5
    mock.sensors_temperatures.return_value = {
        "nvme": [shwtemp("Composite", 38.0, 80.0, 85.0)],
        "coretemp": [shwtemp("Package id 0", 52.0, 100.0, 100.0)],
    }
    mock.virtual_memory.return_value = svmem(
        32 * 1024**3, 20 * 1024**3, 37.5, 12 * 1024**3, 8 * 1024**3
    )
    mock.net_io_counters.return_value = {
        "lo": snetio(1000, 1000, 10, 10),
        "eth0": snetio(5_000_000, 80_000_000, 4000, 60000),
    }
    return mock


# HTTP Fixtures
@pytest.fixture
def mock_response_ok():
    """A 200 response from the collector."""
    response = MagicMock()
    response.status_code = 200
    response.text = '{"status": "stored"}'
    response.json.return_value = {"status": "stored"}
    return response


@pytest.fixture
def mock_response_server_error():
    """A 500 response from the collector."""
    response = MagicMock()
    response.status_code = 500
    response.text = '{"error": "Internal server error"}'
    return response


@pytest.fixture
def sample_config():
    """Configuration with transmission enabled and a zero-length CPU sample."""
    return Config(
        transmission_url="https://collector.example.com/api/stats",
        transmission_enabled=True,
        cpu_sample_interval=0,
    )


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config file."""
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(
        """
transmission:
  url: "https://collector.example.com/api/stats"
  enabled: true
alerts:
  enabled: true
schedule:
  report_interval: 1800
"""
    )
    return config_file
