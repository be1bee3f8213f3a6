"""
Two-way synchronization between storage replicas.
"""
