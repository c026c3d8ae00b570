"""
Stock code frequency ranking on a small local MapReduce engine.
"""

__version__ = "0.1.0"
