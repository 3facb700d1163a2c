"""Snapshot sources backed by external system commands."""

import asyncio
import logging
import re
import sys
from typing import Any, Dict, List, Optional, Sequence

from netpresence.core.errors import SourceUnavailable
from netpresence.types.presence import DeviceSet, canonical_device_set

from .base import SnapshotSource


logger = logging.getLogger(__name__)

MAC_PATTERN = re.compile(r"\b((?:[0-9a-f]{1,2}:){5}[0-9a-f]{1,2})\b", re.IGNORECASE)
NEIGHBOR_PATTERN = re.compile(
    r"(?:\blladdr|\bat)\s+((?:[0-9a-f]{1,2}:){5}[0-9a-f]{1,2})\b", re.IGNORECASE
)

BROADCAST_MAC = "ff:ff:ff:ff:ff:ff"
NULL_MAC = "00:00:00:00:00:00"


def parse_neighbor_table(output: str) -> DeviceSet:
    """
    Extract one hardware address per line of neighbor table output.

    The address must follow an `lladdr` or `at` marker, or be the whole
    line. Lines without one (incomplete or failed entries) and the
    broadcast address are skipped.
    """
    identifiers = []

    for line in output.splitlines():
        # Linux: 192.168.1.1 dev eth0 lladdr aa:bb:cc:dd:ee:ff REACHABLE
        # macOS: ? (192.168.1.1) at aa:bb:cc:dd:ee:ff on en0 ifscope [ethernet]
        match = NEIGHBOR_PATTERN.search(line) or MAC_PATTERN.fullmatch(line.strip())
        if not match:
            continue

        mac = match.group(1).strip()
        if mac.lower() == BROADCAST_MAC:
            continue

        identifiers.append(mac)

    return canonical_device_set(identifiers)


def parse_first_mac(output: str) -> str:
    """Return the first non-null hardware address in interface listing output."""
    for match in MAC_PATTERN.finditer(output):
        mac = match.group(1)
        if mac.lower() not in (NULL_MAC, BROADCAST_MAC):
            return mac
    return ""


def parse_first_token(output: str) -> str:
    """Return the first whitespace-separated token of the output."""
    tokens = output.split()
    return tokens[0] if tokens else ""


class CommandSnapshotSource(SnapshotSource):
    """
    Snapshot source that shells out to system utilities.

    Every command runs as a short-lived subprocess bounded by ``timeout``
    seconds; a process that overruns is killed and reported as unavailable.
    """

    def __init__(
        self,
        neighbor_command: Sequence[str],
        ip_command: Sequence[str],
        mac_command: Sequence[str],
        timeout: float = 10.0,
    ):
        self.neighbor_command = list(neighbor_command)
        self.ip_command = list(ip_command)
        self.mac_command = list(mac_command)
        self.timeout = timeout

    async def capture(self) -> DeviceSet:
        output = await self._run(self.neighbor_command)
        devices = parse_neighbor_table(output)
        logger.debug(f"Captured {len(devices)} devices from neighbor table")
        return devices

    async def local_ip(self) -> str:
        ip = parse_first_token(await self._run(self.ip_command))
        if not ip:
            raise SourceUnavailable(f"No IP address reported by {self.ip_command[0]}")
        return ip

    async def local_mac(self) -> str:
        mac = parse_first_mac(await self._run(self.mac_command))
        if not mac:
            raise SourceUnavailable(f"No hardware address reported by {self.mac_command[0]}")
        return mac

    async def _run(self, command: List[str]) -> str:
        """
        Run a command and return its standard output.

        Raises:
            SourceUnavailable: If the command cannot be started, times out or
                exits with an error and no output
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SourceUnavailable(f"Unable to execute {command[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise SourceUnavailable(
                f"{command[0]} did not finish within {self.timeout}s"
            ) from e

        if stdout is None:
            raise SourceUnavailable(f"No output stream from {command[0]}")

        output = stdout.decode("utf-8", errors="replace")

        if process.returncode != 0 and not output.strip():
            error = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise SourceUnavailable(
                f"{command[0]} exited with status {process.returncode}: {error}"
            )

        return output


class LinuxSnapshotSource(CommandSnapshotSource):
    """Linux neighbor table via iproute2."""

    NEIGHBOR_COMMAND = ["ip", "neigh", "show"]
    IP_COMMAND = ["hostname", "-I"]
    MAC_COMMAND = ["ip", "link", "show"]

    def __init__(self, timeout: float = 10.0, **commands: Optional[Sequence[str]]):
        super().__init__(
            commands.get("neighbor") or self.NEIGHBOR_COMMAND,
            commands.get("ip") or self.IP_COMMAND,
            commands.get("mac") or self.MAC_COMMAND,
            timeout=timeout,
        )


class BsdSnapshotSource(CommandSnapshotSource):
    """macOS / BSD neighbor table via arp(8)."""

    NEIGHBOR_COMMAND = ["arp", "-an"]
    IP_COMMAND = ["ipconfig", "getifaddr", "en0"]
    MAC_COMMAND = ["ifconfig"]

    def __init__(self, timeout: float = 10.0, **commands: Optional[Sequence[str]]):
        super().__init__(
            commands.get("neighbor") or self.NEIGHBOR_COMMAND,
            commands.get("ip") or self.IP_COMMAND,
            commands.get("mac") or self.MAC_COMMAND,
            timeout=timeout,
        )


def _split_command(value: Any) -> Optional[List[str]]:
    if not value:
        return None
    if isinstance(value, str):
        return value.split()
    return [str(part) for part in value]


def create_snapshot_source(
    monitor_config: Dict[str, Any],
    platform: Optional[str] = None,
) -> CommandSnapshotSource:
    """
    Create the snapshot source for the running platform.

    Args:
        monitor_config: Monitor section from ConfigManager.get_monitor_config()
        platform: Platform name override (defaults to sys.platform)
    """
    platform = platform or sys.platform
    commands = monitor_config.get("commands") or {}
    timeout = monitor_config.get("command_timeout", 10.0)

    overrides = {
        key: _split_command(commands.get(key))
        for key in ("neighbor", "ip", "mac")
    }

    if platform.startswith("linux"):
        source_cls = LinuxSnapshotSource
    elif platform == "darwin" or "bsd" in platform:
        source_cls = BsdSnapshotSource
    else:
        raise ValueError(f"Unsupported platform for neighbor table: {platform}")

    logger.info(f"Using {source_cls.__name__} (timeout {timeout}s)")
    return source_cls(timeout=timeout, **overrides)
