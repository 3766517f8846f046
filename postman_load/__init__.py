"""
Multi-user load harness for Postman collection exports.

Simulated users replay a collection on a fixed interval until a global
deadline, and per-request latency and status codes are aggregated into an
optional summary report with CSV and chart artefacts.
"""

from .main import main

__all__ = ["main"]
