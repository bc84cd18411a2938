"""Host detection — read-only probes of the machine being bootstrapped."""

from dotstrap.core.detection.platform import detect, parse_os_release

__all__ = ["detect", "parse_os_release"]
