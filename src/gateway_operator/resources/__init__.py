"""Generators for the objects owned by Gateways, DataPlanes and ControlPlanes."""
