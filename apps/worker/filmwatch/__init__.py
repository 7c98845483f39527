"""
FilmWatch worker - discovers new forum film posts and announces each one once
"""

__version__ = "1.0.0"
