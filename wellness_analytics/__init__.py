"""Clinical analytics and risk-assessment engine for the wellness tracker."""

__version__ = "0.1.0"
