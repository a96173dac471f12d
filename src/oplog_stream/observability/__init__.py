"""
Logging and metrics
"""
