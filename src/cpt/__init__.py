"""
cpt: maintenance tool for Copper persistent workflow engine databases.

Counts, inspects, restarts, deletes and purges persisted workflow instances
directly in the engine's relational store, without a running engine.
"""

__version__ = "0.2.0"
