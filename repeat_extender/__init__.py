"""Iterative extension of repeat consensus borders"""

__version__ = '0.2.0'
