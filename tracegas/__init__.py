"""EVM trace analysis and gas optimization engine."""

__version__ = "0.1.0"
