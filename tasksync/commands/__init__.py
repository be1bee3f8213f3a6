"""
Commands run through ``python -m tasksync``.
"""
