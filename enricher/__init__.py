"""
sheet-enricher

AI row enrichment for company and contact spreadsheets.
"""

__version__ = "0.3.0"
