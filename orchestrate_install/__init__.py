"""
orchestrate-install — environment-aware package installation for Ubuntu hosts.
"""

__version__ = "0.1.0"
