"""Exceptions raised by the speedtest exporter."""

from typing import List, Optional, Sequence


class SpeedtestExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(SpeedtestExporterError):
    """The configuration could not be read or is invalid."""


class SpeedtestError(SpeedtestExporterError):
    """A speed test against a single server failed."""

    def __init__(self, server_id: int, message: str):
        super().__init__(message)
        self.server_id = server_id


class ProcessFailed(SpeedtestError):
    """The speedtest command could not be started or exited non-zero."""

    def __init__(self, server_id: int, message: str, returncode: Optional[int] = None):
        super().__init__(server_id, message)
        self.returncode = returncode


class MalformedOutput(SpeedtestError):
    """The speedtest command succeeded but its output could not be parsed."""


class CycleError(SpeedtestExporterError):
    """Aggregates every per-server failure from one run over all servers."""

    def __init__(self, errors: Sequence[SpeedtestError]):
        self.errors: List[SpeedtestError] = list(errors)
        super().__init__(self._format())

    @property
    def server_ids(self) -> List[int]:
        return [err.server_id for err in self.errors]

    def _format(self) -> str:
        if len(self.errors) == 1:
            return f"1 error occurred: server {self.errors[0].server_id}: {self.errors[0]}"
        details = '; '.join(f"server {err.server_id}: {err}" for err in self.errors)
        return f"{len(self.errors)} errors occurred: {details}"
