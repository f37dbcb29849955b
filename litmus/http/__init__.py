"""Ephemeral TLS server, certificate material and the request client."""
