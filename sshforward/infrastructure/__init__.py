"""
Infrastructure layer containing external dependencies and I/O operations.

This layer handles configuration, logging, the asyncssh transport and the
socket-level forwarding services.
"""
