"""Test fakes for the container collaborator and the registry HTTP API."""
