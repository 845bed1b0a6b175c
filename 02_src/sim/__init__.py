"""Simulation helpers for the inbox service."""

from .sim import ISim, Sim
from .watcher import SidebarWatcher

__all__ = ["ISim", "Sim", "SidebarWatcher"]
