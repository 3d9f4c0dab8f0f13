"""
Engagement analytics and content ranking engine.
"""

__version__ = "0.1.0"
