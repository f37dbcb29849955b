"""Harness logic: matchers, mock backend, body sources, assertions and the runner."""
