"""Native engine adapters."""

from sqlstep.adapters import sqlite

__all__ = ("sqlite",)
