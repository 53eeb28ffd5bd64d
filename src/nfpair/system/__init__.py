"""System detection utilities."""

from .device_detector import get_device_model, get_hostname

__all__ = ["get_device_model", "get_hostname"]
