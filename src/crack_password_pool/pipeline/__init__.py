"""Dispatch engine: worker pool, trial executor, dispatch loop, termination."""
