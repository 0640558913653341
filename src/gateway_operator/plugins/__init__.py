"""Plugin system for the gateway operator."""

from .base import PluginBase, PluginContext
from .registry import PluginRegistry

__all__ = ["PluginBase", "PluginContext", "PluginRegistry"]
