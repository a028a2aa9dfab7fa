"""Load the exporter configuration file."""

import json
import re
from typing import Any, Dict, List, Optional

from .errors import ConfigError
from .models import Command, Config, RemoteWriteSettings

DEFAULT_PORT = 9801

# Seconds per unit, following Go's time.ParseDuration
_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'μs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}
_DURATION_PART_PATTERN = re.compile(r'(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)')


def parse_duration(text: str) -> float:
    """Parse a short duration string such as "30m", "1h30m" or "1.5s".

    Args:
        text: Duration string; a sequence of decimal numbers each with a unit
            suffix (ns, us, ms, s, m, h) and an optional leading sign

    Returns:
        The duration in seconds

    Raises:
        ValueError: If the string is not a valid duration
    """
    if not isinstance(text, str):
        raise ValueError(f"invalid duration {text!r}")

    remaining = text
    sign = 1.0
    if remaining[:1] in ('-', '+'):
        if remaining[0] == '-':
            sign = -1.0
        remaining = remaining[1:]

    # Special case: a bare zero needs no unit
    if remaining == '0':
        return 0.0
    if not remaining:
        raise ValueError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(remaining):
        match = _DURATION_PART_PATTERN.match(remaining, pos)
        if not match:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    return sign * total


def _get(raw: Dict[str, Any], *keys: str) -> Any:
    """Return the first key present, so both "name" and "Name" are accepted."""
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _parse_command(raw: Any) -> Command:
    if not isinstance(raw, dict):
        raise ConfigError("'command' must be an object with 'name' and 'args'")
    name = _get(raw, 'name', 'Name')
    if not isinstance(name, str) or not name:
        raise ConfigError("'command.name' must be a non-empty string")
    args = _get(raw, 'args', 'Args')
    if args is None:
        args = []
    if not isinstance(args, list) or not all(isinstance(arg, str) for arg in args):
        raise ConfigError("'command.args' must be a list of strings")
    return Command(name=name, args=tuple(args))


def _parse_servers(raw: Any) -> List[int]:
    if not isinstance(raw, list):
        raise ConfigError("'servers' must be a list of server IDs")
    servers = []
    for server_id in raw:
        if isinstance(server_id, bool) or not isinstance(server_id, int):
            raise ConfigError(f"invalid server ID {server_id!r}: must be an integer")
        servers.append(server_id)
    return servers


def _parse_remote_write(raw: Any) -> Optional[RemoteWriteSettings]:
    if raw is None:
        return None
    if not isinstance(raw, dict) or not isinstance(raw.get('url'), str) or not raw['url']:
        raise ConfigError("'remote_write' must be an object with a non-empty 'url'")
    headers = raw.get('headers') or {}
    if not isinstance(headers, dict):
        raise ConfigError("'remote_write.headers' must be an object")
    return RemoteWriteSettings(
        url=raw['url'],
        headers={str(k): str(v) for k, v in headers.items()},
        instance_label=str(raw.get('instance_label', 'speedtest')),
        verbose=bool(raw.get('verbose', False)),
    )


def parse_config(raw: Any) -> Config:
    """Build a Config from an already decoded JSON document."""
    if not isinstance(raw, dict):
        raise ConfigError("config must be a JSON object")

    command = _parse_command(raw.get('command'))
    servers = _parse_servers(raw.get('servers'))

    if 'tick' not in raw:
        raise ConfigError("'tick' is required")
    try:
        tick = parse_duration(raw['tick'])
    except ValueError as e:
        raise ConfigError(f"invalid 'tick': {e}") from e
    if tick <= 0:
        raise ConfigError(f"'tick' must be positive, got {raw['tick']!r}")

    port = raw.get('port', DEFAULT_PORT)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
        raise ConfigError(f"invalid 'port' {port!r}")

    listen_address = raw.get('listen_address', '')
    if not isinstance(listen_address, str):
        raise ConfigError("'listen_address' must be a string")

    return Config(
        command=command,
        servers=tuple(servers),
        tick=tick,
        listen_address=listen_address,
        port=port,
        remote_write=_parse_remote_write(raw.get('remote_write')),
    )


def load_config(file_path: str) -> Config:
    """Read and validate the JSON configuration file.

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(f"unable to read file: {e}") from e

    try:
        raw = json.loads(content)
    except ValueError as e:
        raise ConfigError(f"unable to unmarshal config: {e}") from e

    return parse_config(raw)
