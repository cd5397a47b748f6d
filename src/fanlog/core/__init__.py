"""Core building blocks: events, formatting, retry, settings and the facade."""
