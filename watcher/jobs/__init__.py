"""
watcher/jobs - CLI entrypoints.
"""
