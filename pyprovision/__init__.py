"""
pyprovision - provisions a machine to run a Python application from a git repository.
"""

__version__ = "0.1.0"
