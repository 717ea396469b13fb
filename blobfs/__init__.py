"""
blobfs

A hierarchical virtual filesystem over an S3 bucket, plus a cross-process
mutual-exclusion lock arbitrated through an SQS FIFO queue.
"""

__version__ = "1.0.0"
