"""Concrete collaborators: dictionary files, HTTP tester, operator output."""
