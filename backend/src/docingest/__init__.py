"""Document ingestion core: validation, content security, deduplication,
pluggable storage and transactional persistence with compensating cleanup.
"""

__version__ = "0.1.0"
