"""Airtime backend: plan-tier feature reconciliation and job dispatch."""

__version__ = "0.1.0"
