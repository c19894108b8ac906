"""
Golden Path adaptive learning core
"""
__version__ = "1.0.0"
