"""
Common foundation classes for the rescore packages.
"""

try:
    from .version import __version__
except ImportError:
    __version__ = "(unset)"

class RescoreException(Exception):
    """
    a general base class for exceptions raised by the rescore packages
    """
    pass
