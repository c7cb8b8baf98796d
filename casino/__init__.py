"""Core rule engine package for two-player Casino."""

__all__ = [
    "cards",
    "deck",
    "partition",
    "table",
    "state",
    "actions",
    "results",
    "validators",
    "reducer",
    "lifecycle",
    "mechanics",
    "scoring",
    "encode",
    "rules_schema",
    "service",
]
