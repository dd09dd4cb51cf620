"""ModShield - warning ledger and ban escalation for community moderation."""

__version__ = "0.1.0"
