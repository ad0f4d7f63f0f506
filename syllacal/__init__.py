"""
syllacal - Syllabus-to-calendar sync and shared meeting slot finder.
"""

__version__ = "0.1.0"
