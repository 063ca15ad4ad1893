"""
                Restaurant Order Flow

Async backend for the restaurant order lifecycle: order intake,
kitchen fulfillment queue, and table occupancy management.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
