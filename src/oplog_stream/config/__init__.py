"""
Configuration models and loaders
"""
