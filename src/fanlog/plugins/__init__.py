"""Pluggable output stages. Only sinks exist today."""
