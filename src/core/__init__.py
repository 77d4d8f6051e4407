"""Core domain package for gitstatus.

Core contains polling, paging and enrichment logic without any HTTP or
storage-specific code, keeping the runtime portable.
"""
