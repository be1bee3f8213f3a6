"""
tasksync - a personal task list with a local SQLite store, an HTTP server and
two-way sync between replicas.
"""
__version__ = "0.1.0"
