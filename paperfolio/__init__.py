"""paperfolio - a simulated single-portfolio brokerage account."""

__version__ = "0.1.0"
