"""Utility functions shared by the exporter modules."""

from typing import Dict, List, Optional


def ms_to_seconds(value: float) -> float:
    """Convert a millisecond reading from the speedtest CLI to seconds."""
    return value / 1000.0


def prepare_headers(remote_write_headers: Optional[List[str]]) -> Dict[str, str]:
    """Prepare headers dictionary from command-line arguments."""
    headers = {}
    if remote_write_headers:
        for header in remote_write_headers:
            if '=' in header:
                key, value = header.split('=', 1)
                headers[key] = value
    return headers


def format_labels(labels: Dict[str, str]) -> str:
    """Format a label set the way the text exposition format prints it."""
    if not labels:
        return ''
    label_str = ','.join(f'{k}="{v}"' for k, v in sorted(labels.items()))
    return f'{{{label_str}}}'
