"""
mkdemo CLI Commands

Each module registers one command group and returns result dicts.
"""

from . import create, voices

__all__ = ['create', 'voices']
