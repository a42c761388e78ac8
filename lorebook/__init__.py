"""
Lorebook
========

Knowledge injection engine for interactive-fiction narration prompts.
"""

__version__ = "0.3.0"
