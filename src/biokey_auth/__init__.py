"""BioKey Auth: password and biometric key authentication service."""

__version__ = "0.1.0"
