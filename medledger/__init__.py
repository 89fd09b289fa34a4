"""
MedLedger – access-controlled medical record and prescription ledger.
"""

__version__ = "1.0.0"
