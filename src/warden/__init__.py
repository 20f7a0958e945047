"""warden -- perception-driven guard agents for real-time simulations."""

__version__ = "0.1.0"
