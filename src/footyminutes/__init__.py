"""Fixture, lineup and match-result tracking for youth football teams."""

__version__ = "0.3.0"
