"""
bulkrun: apply a named callback to many records, in chunks or through a queue.

Select records of one type by explicit IDs or by bundle and field filters,
confirm, then either run the callback inline chunk by chunk with progress
feedback, or enqueue one durable work item per record for a worker to
consume later.
"""

__version__ = "0.1.0"
