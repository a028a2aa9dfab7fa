"""Data models for speedtest results and exporter configuration."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# JSON null reads as the zero value, like a missing field


def _float(payload: Dict[str, Any], key: str) -> float:
    value = payload.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"field '{key}' must be a number, got {type(value).__name__}")
    return float(value)


def _int(payload: Dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"field '{key}' must be an integer, got {type(value).__name__}")
    return value


def _str(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise TypeError(f"field '{key}' must be a string, got {type(value).__name__}")
    return value


def _section(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"field '{key}' must be an object, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class Command:
    """The speedtest executable and the arguments passed on every run."""
    name: str
    args: Tuple[str, ...] = ()

    def argv(self, server_id: int) -> Tuple[str, ...]:
        """Build the full argument vector for a run against one server."""
        return (self.name, *self.args, '-s', str(server_id))


@dataclass
class Ping:
    """Latency figures reported by the speedtest CLI, in milliseconds."""
    jitter: float = 0.0
    latency: float = 0.0

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> 'Ping':
        return cls(jitter=_float(payload, 'jitter'), latency=_float(payload, 'latency'))

    def to_dict(self) -> Dict[str, Any]:
        return {'jitter': self.jitter, 'latency': self.latency}

    def is_zero(self) -> bool:
        return self.latency == 0 and self.jitter == 0

    def is_missing_data(self) -> bool:
        # Jitter can legitimately be zero
        return self.latency == 0


@dataclass
class Speed:
    """One direction of a speed test."""
    bandwidth: float = 0.0  # bytes per second
    bytes: float = 0.0
    elapsed: float = 0.0  # as reported by the CLI, exported as-is

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> 'Speed':
        return cls(
            bandwidth=_float(payload, 'bandwidth'),
            bytes=_float(payload, 'bytes'),
            elapsed=_float(payload, 'elapsed'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'bandwidth': self.bandwidth, 'bytes': self.bytes, 'elapsed': self.elapsed}

    def is_zero(self) -> bool:
        return self.bandwidth == 0 and self.bytes == 0 and self.elapsed == 0

    def is_missing_data(self) -> bool:
        return self.bandwidth == 0 or self.bytes == 0 or self.elapsed == 0


@dataclass
class Server:
    """The remote server a speed test ran against."""
    id: int = 0
    name: str = ''
    location: str = ''
    country: str = ''
    host: str = ''
    port: int = 0

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> 'Server':
        return cls(
            id=_int(payload, 'id'),
            name=_str(payload, 'name'),
            location=_str(payload, 'location'),
            country=_str(payload, 'country'),
            host=_str(payload, 'host'),
            port=_int(payload, 'port'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'country': self.country,
            'host': self.host,
            'port': self.port,
        }

    def is_zero(self) -> bool:
        return (self.id == 0 and not self.name and not self.location
                and not self.country and not self.host and self.port == 0)

    def is_missing_data(self) -> bool:
        return (self.id == 0 or not self.name or not self.location
                or not self.country or not self.host or self.port == 0)


@dataclass
class TestResults:
    """Represents the parsed output of a single speedtest run."""
    ping: Ping = field(default_factory=Ping)
    download: Speed = field(default_factory=Speed)
    upload: Speed = field(default_factory=Speed)
    packet_loss: float = 0.0  # percent
    isp: str = ''
    server: Server = field(default_factory=Server)

    # Keep pytest from collecting this class
    __test__ = False

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> 'TestResults':
        """Build results from the JSON object printed by the speedtest CLI.

        Missing fields default to zero or empty values and unknown fields are
        ignored. Fields of the wrong type raise ``TypeError``.
        """
        if not isinstance(payload, dict):
            raise TypeError(f"results must be a JSON object, got {type(payload).__name__}")
        return cls(
            ping=Ping.from_dict(_section(payload, 'ping')),
            download=Speed.from_dict(_section(payload, 'download')),
            upload=Speed.from_dict(_section(payload, 'upload')),
            packet_loss=_float(payload, 'packetLoss'),
            isp=_str(payload, 'isp'),
            server=Server.from_dict(_section(payload, 'server')),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the speedtest CLI JSON shape."""
        return {
            'ping': self.ping.to_dict(),
            'download': self.download.to_dict(),
            'upload': self.upload.to_dict(),
            'packetLoss': self.packet_loss,
            'isp': self.isp,
            'server': self.server.to_dict(),
        }

    def is_missing_data(self) -> bool:
        """Check whether the CLI returned a partial payload.

        Packet loss is not considered since zero loss is a valid result.
        """
        return (self.ping.is_missing_data()
                or self.download.is_missing_data()
                or self.upload.is_missing_data()
                or self.server.is_missing_data()
                or not self.isp)


@dataclass(frozen=True)
class RemoteWriteSettings:
    """Where to push registry samples after every run."""
    url: str
    headers: Dict[str, str] = field(default_factory=dict, hash=False)
    instance_label: str = 'speedtest'
    verbose: bool = False  # log every pushed sample


@dataclass(frozen=True)
class Config:
    """Exporter configuration."""
    command: Command
    servers: Tuple[int, ...]
    tick: float  # seconds between runs
    listen_address: str = ''
    port: int = 9801
    remote_write: Optional[RemoteWriteSettings] = None
