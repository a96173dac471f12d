"""
Base exception for the oplog stream package
"""


class OplogStreamError(Exception):
    """Root of every error raised by oplog_stream"""

    pass
