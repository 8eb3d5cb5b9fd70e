"""tlshunter - static TLS misconfiguration triage for Android applications."""

__version__ = "0.1.0"
