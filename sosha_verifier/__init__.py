"""
Sosha Verifier: single-use verification of Ethiopian bank and mobile-money receipts.
"""

__version__ = "0.1.0"
