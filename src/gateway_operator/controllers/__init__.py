"""Reconcilers and the work queue driving them."""

from .base import Controller, Reconciler, Request, Result, WorkQueue
from .controlplane import ControlPlaneReconciler
from .dataplane import DataPlaneReconciler
from .gateway import GatewayReconciler

__all__ = [
    "Controller",
    "Reconciler",
    "Request",
    "Result",
    "WorkQueue",
    "ControlPlaneReconciler",
    "DataPlaneReconciler",
    "GatewayReconciler",
]
