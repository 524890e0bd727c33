"""
Django app that persists Casbin policy rules in a fixed-width database table.
"""

import os

__version__ = "0.1.0"

ROOT_DIRECTORY = os.path.dirname(os.path.abspath(__file__))
