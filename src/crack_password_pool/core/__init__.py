"""Core types: candidate registry, trial outcomes, collaborator interfaces."""
