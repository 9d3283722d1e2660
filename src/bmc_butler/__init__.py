"""Configuration and lifecycle management for fleets of BMC/CMC controllers."""

__version__ = "0.3.0"
