"""
Task model, recurrence and the operations built on the storage contract.
"""
