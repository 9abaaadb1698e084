"""
TakrawIQ — Live sepak takraw rally scoring engine
=================================================
Rally-by-rally scoring for a single set: stage protocol, point awards,
append-only score ledger and two-tier undo.
"""

__version__ = "1.0.0"
__app_name__ = "TakrawIQ"
