"""ThetaFlowz - options-trading education and market data backend."""

__version__ = "1.0.0"
