"""
Test package for Crack Password Pool

This package contains unit tests for the registry, worker pool, dispatch
loop and termination protocols, plus tests of the file, HTTP and CLI
collaborators.
"""

# Shared test constants
DEFAULT_SURL = "AbCdEfGhIjK"
DEFAULT_PROXIES = ["http://10.0.0.1:8080", "http://10.0.0.2:8080"]

# Small pool so concurrency tests stay fast and deterministic enough
SMALL_POOL_CONFIG = {
    "core_size": 2,
    "max_size": 4,
    "backlog_size": 8,
    "keep_alive_seconds": 1,
    "drivers": 3,
    "drain_timeout_seconds": 5,
    "thread_name_prefix": "TestPool-Thread-",
}

__all__ = [
    "DEFAULT_SURL",
    "DEFAULT_PROXIES",
    "SMALL_POOL_CONFIG",
]
