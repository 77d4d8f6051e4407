"""Adapters that connect the gitstatus core to GitHub and local files."""
